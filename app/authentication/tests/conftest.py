"""
Fixtures for authentication tests.
"""

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import UserFactory


@pytest.fixture
def user(db):
    """Create a regular user."""
    return UserFactory()


@pytest.fixture
def api_client():
    """Unauthenticated DRF client."""
    return APIClient()
