"""
Pytest configuration for API integration tests
"""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture(scope="function")
def vision_service(make_vision_service):
    """Vision service with every processor built"""
    return make_vision_service(
        use_april_tag_vision=True, use_color_blob_vision=True, use_tensor_flow_vision=True
    )


@pytest.fixture(scope="function")
def client(vision_service):
    """
    Create a test client with properly initialized app state.
    Each test gets a fresh client to avoid state contamination.
    """
    from main import app

    app.state.vision_service = vision_service
    app.state.config = vision_service.settings.to_dict()

    # Create test client (no context manager so the camera is never opened)
    test_client = TestClient(app, raise_server_exceptions=False)

    yield test_client

    app.state.vision_service = None
