import string

import pytest

from jrpc_core.id_providers import (
    IdProvider,
    NoopIdProvider,
    RandomIntegerIdProvider,
    RandomStringIdProvider,
)


def test_id_provider_is_abstract():
    with pytest.raises(TypeError):
        IdProvider()


def test_providers_share_interface():
    providers = [NoopIdProvider(), RandomStringIdProvider(3), RandomIntegerIdProvider()]
    assert all(isinstance(provider, IdProvider) for provider in providers)
    ids = [provider.next_id() for provider in providers]
    assert ids[0] == 0
    assert len(ids[1]) == 3
    assert ids[2] >> 53 == 0


def test_noop_provider_returns_zero():
    provider = NoopIdProvider()
    assert [provider.next_id() for _ in range(3)] == [0, 0, 0]


def test_random_integer_fits_js_number():
    provider = RandomIntegerIdProvider()
    for _ in range(200):
        value = provider.next_id()
        assert isinstance(value, int)
        assert 0 <= value
        assert value >> 53 == 0


def test_random_integer_varies():
    provider = RandomIntegerIdProvider()
    assert len({provider.next_id() for _ in range(50)}) > 1


@pytest.mark.parametrize("length", [0, 1, 16, 64])
def test_random_string_length_and_alphabet(length):
    value = RandomStringIdProvider(length).next_id()
    assert len(value) == length
    assert set(value) <= set(string.ascii_letters + string.digits)


def test_random_string_varies():
    provider = RandomStringIdProvider(16)
    assert len({provider.next_id() for _ in range(20)}) > 1