"""Simple test to verify pytest setup."""


def test_import_app():
    """Test that we can import the app module."""
    from railbook.main import create_app
    app = create_app()
    assert app is not None


def test_routes_registered():
    from railbook.main import app

    paths = {getattr(route, "path", None) for route in app.routes}
    for path in ("/v1/train/search", "/v1/booking/create", "/v1/booking/pay", "/health", "/metrics"):
        assert path in paths
