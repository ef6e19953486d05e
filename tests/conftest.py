"""Shared fixtures: RSA keys and fake cluster transports."""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from dcos_metrics_client.dcosapi import types


@pytest.fixture(scope="session")
def private_key() -> rsa.RSAPrivateKey:
    """RSA key generated once per test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(private_key: rsa.RSAPrivateKey) -> bytes:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture
def service_account(private_key: rsa.RSAPrivateKey) -> types.ServiceAccount:
    return types.ServiceAccount(account_id="telegraf", private_key=private_key)
