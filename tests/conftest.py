import pytest

from billsplit.app import create_app


class FakeRemote:
    """Stands in for the remote API: canned replies per method, calls recorded."""

    def __init__(self):
        self.replies = {}
        self.calls = []
        self.tokens = []

    def client(self, token):
        self.tokens.append(token)
        return FakeApiClient(self, token)


class FakeApiClient:
    def __init__(self, remote, token):
        self.remote = remote
        self.token = token

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.remote.calls.append((name, args, kwargs))
            reply = self.remote.replies.get(name)
            if isinstance(reply, Exception):
                raise reply
            if callable(reply):
                return reply(*args, **kwargs)
            return reply

        return method


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def app(remote):
    app = create_app(api_client_factory=remote.client)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logged_in(client):
    with client.session_transaction() as sess:
        sess["auth_token"] = "tok-1"
        sess["profile_id"] = "p1"
        sess["user_name"] = "Ana"
    return client


def calls_named(remote, name):
    return [call for call in remote.calls if call[0] == name]
