import pytest

from diarywewrite.factory import create_web_app

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'CREATE_DB': True,
    'REDIS_FAKE': True,
    'SECRET_KEY': 'test-flask-secret-key-of-reasonable-length',
    'JWT_SECRET': 'test-jwt-secret-key-of-reasonable-length',
    'SESSION_DURATION': '500',
    'AUTH_SESSION_COOKIE_SECURE': False,
    'AUTH_SESSION_COOKIE_DOMAIN': None,
    'OAUTH_CALLBACK_BASE_URL': 'http://localhost:3000',
    'GOOGLE_CLIENT_ID': 'google-client',
    'GOOGLE_CLIENT_SECRET': 'google-secret',
    'FACEBOOK_APP_ID': 'facebook-app',
    'FACEBOOK_APP_SECRET': 'facebook-secret',
    'DIARIES_REQUIRE_AUTH': False,
    'DIARY_TIMEZONE': None,
}


@pytest.fixture()
def app():
    return create_web_app(dict(TEST_CONFIG))


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def request_context(app):
    with app.test_request_context():
        yield
