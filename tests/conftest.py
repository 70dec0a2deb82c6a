"""Shared pytest fixtures for the bridge bot tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from helpers import FakeTransportFactory  # noqa: E402

from wabridge.whatsapp.lifecycle import LifecycleManager  # noqa: E402
from wabridge.whatsapp.transport import Ready  # noqa: E402


@pytest.fixture
def transport_factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def manager(transport_factory) -> LifecycleManager:
    """Manager with short reconnect delays and a stub QR renderer."""
    return LifecycleManager(
        transport_factory,
        reconnect_delay=0.01,
        reconnect_max_delay=0.08,
        qr_renderer=lambda qr: b"\x89PNG-" + qr.encode(),
    )


@pytest.fixture
async def ready_manager(manager, transport_factory) -> LifecycleManager:
    """Manager whose session already reached READY."""
    await manager.start()
    await transport_factory.latest.emit(Ready())
    yield manager
    await manager.shutdown(grace=0.1)
