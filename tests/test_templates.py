"""Tests for reply templates."""

import pytest

from wabridge.domain.commands import COMMAND_TABLE
from wabridge.whatsapp.templates import ACTION_LABELS, TEMPLATES, render


class TestRender:
    def test_render_with_params(self):
        assert render("reminder", {"text": "Clase a las 5"}) == "⏰ Recordatorio: Clase a las 5"

    def test_unknown_template(self):
        with pytest.raises(ValueError, match="Unknown template"):
            render("does_not_exist")

    def test_disallowed_params(self):
        with pytest.raises(ValueError, match="Disallowed"):
            render("pong", {"phone": "5512345678"})

    @pytest.mark.parametrize("key", [k for k, t in TEMPLATES.items() if not t["allowed_params"]])
    def test_static_templates_render(self, key):
        assert render(key)


def test_every_action_has_label():
    assert set(ACTION_LABELS) == set(COMMAND_TABLE)
