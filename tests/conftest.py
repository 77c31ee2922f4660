import pytest

from app import create_app
from config import TestConfig
from models import db


@pytest.fixture
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(client, name):
    resp = client.post('/api/users', json={'name': name})
    assert resp.status_code == 201
    return resp.get_json()['id']


def make_group(client, name, members):
    resp = client.post('/api/groups', json={'name': name, 'members': members})
    assert resp.status_code == 201
    return resp.get_json()['id']
