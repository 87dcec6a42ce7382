"""Shared fixtures: pairing setup is slow, so one scheme per test session."""

import pytest

from dual_apsi import Config, Party, setup


@pytest.fixture(scope="session")
def scheme():
    """A fresh SS512 scheme with 2-byte elements."""
    return setup(160, 512, config=Config(element_width=2, num_workers=4))


@pytest.fixture(scope="session")
def signer(scheme):
    """Sign a (client_set, server_set) pair; returns the four protocol inputs."""
    def sign(client_set, server_set):
        _, client_signatures = scheme.sign_set(client_set, Party.CLIENT)
        _, server_signatures = scheme.sign_set(server_set, Party.SERVER)
        return client_set, client_signatures, server_set, server_signatures
    return sign
