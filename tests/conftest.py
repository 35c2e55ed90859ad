import base64
import os

# Console-only logging and a throwaway default database for the app module.
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import get_db, init_db
from main import app, get_photo_store
from photo_store import PhotoStore


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def photos(tmp_path):
    return PhotoStore(str(tmp_path / "labeled_images"))


@pytest.fixture
def client(session_factory, photos):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_photo_store] = lambda: photos
    yield TestClient(app)
    app.dependency_overrides.clear()


def encode_image(color=128, prefix=True):
    img = np.full((32, 32, 3), color, dtype=np.uint8)
    ok, buffer = cv2.imencode(".jpg", img)
    assert ok
    data = base64.b64encode(buffer.tobytes()).decode("ascii")
    return f"data:image/jpeg;base64,{data}" if prefix else data


@pytest.fixture
def image_b64():
    return encode_image()


@pytest.fixture
def make_image():
    return encode_image
