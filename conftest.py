import pytest

from collab_auth.tests.util import temporary_app


@pytest.fixture()
def app():
    with temporary_app() as app:
        yield app


@pytest.fixture()
def request_context(app):
    with app.test_request_context() as context:
        yield context
