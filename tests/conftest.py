import socket

import pytest


@pytest.fixture
def interface() -> str:
    """
    Name of any interface present on this host.
    """
    names = [name for _, name in socket.if_nameindex()]
    if not names:
        pytest.skip("no network interfaces available")
    return "lo" if "lo" in names else names[0]
