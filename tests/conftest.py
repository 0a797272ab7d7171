import pytest

from linkhub import create_app
from linkhub.config import TestConfig
from linkhub.extensions import db


@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        LINKS_FILE = str(tmp_path / "links.json")

    app = create_app(_Config)
    with app.app_context():
        db.drop_all()
        db.create_all()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
