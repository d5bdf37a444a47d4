from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from errors import StorageError


class FakeUploader:
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_on: Optional[str] = None
        self._counter = 0

    def upload(
        self, content: bytes, prefix: str, filename: Optional[str] = None
    ) -> str:
        if filename is not None and filename == self.fail_on:
            raise StorageError(f"Failed to upload {filename}")
        self._counter += 1
        url = f"https://cdn.example.test/{prefix}/{self._counter:03d}-{filename}"
        self.objects[url] = content
        return url

    def delete(self, url: str) -> None:
        self.deleted.append(url)
        self.objects.pop(url, None)


@pytest.fixture
def session():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()
