"""Shared fixtures for the resize worker tests."""

import pytest

from tests.stubs import InMemoryObjectStore, InMemoryQueueClient, encode_image


@pytest.fixture
def png_bytes():
    return encode_image()


@pytest.fixture
def store(png_bytes):
    return InMemoryObjectStore({("b1", "a.png"): png_bytes})


@pytest.fixture
def queue_client():
    return InMemoryQueueClient({"jobs": []})
