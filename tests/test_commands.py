"""Tests for keyword command parsing."""

import pytest

from wabridge.domain.commands import COMMAND_TABLE, clean_text, parse_command


class TestParseCommand:
    def test_save_note_with_argument(self):
        parsed = parse_command("guardar comprar leche")
        assert parsed is not None
        assert parsed.action == "save_note"
        assert parsed.argument == "comprar leche"

    def test_bare_prefix_has_empty_argument(self):
        parsed = parse_command("lista")
        assert parsed is not None
        assert parsed.action == "list_notes"
        assert parsed.argument == ""

    def test_unrecognized_text(self):
        assert parse_command("hola") is None

    def test_empty_text(self):
        assert parse_command("") is None
        assert parse_command("   ") is None

    def test_longest_prefix_wins(self):
        parsed = parse_command("mis notas")
        assert parsed.action == "list_notes"
        assert parsed.prefix == "mis notas"

        parsed = parse_command("enviar pendientes hoy")
        assert parsed.action == "flush_pending"
        assert parsed.argument == "hoy"

    def test_word_boundary_required(self):
        assert parse_command("notable") is None
        assert parse_command("guardarlo") is None

    def test_case_and_whitespace_insensitive(self):
        parsed = parse_command("  GUARDAR   Llamar   a Juan ")
        assert parsed.action == "save_note"
        assert parsed.argument == "llamar a juan"

    @pytest.mark.parametrize(
        "prefix,action",
        [(prefix, action) for action, prefixes in COMMAND_TABLE.items() for prefix in prefixes],
    )
    def test_every_prefix_maps_to_its_action(self, prefix, action):
        assert parse_command(prefix).action == action
        assert parse_command(f"{prefix} algo").argument == "algo"


class TestCleanText:
    def test_lowercases_and_collapses(self):
        assert clean_text("  Hola\n  MUNDO ") == "hola mundo"

    def test_none_safe(self):
        assert clean_text(None) == ""
