import io
from pathlib import Path
from typing import Callable, List

import pytest


class CountingReader(io.BytesIO):
    """In-memory binary stream which records the length of every block read from it."""

    def __init__(self, data: bytes) -> None:
        io.BytesIO.__init__(self, data)
        self.reads: List[int] = []

    def read(self, size=-1) -> bytes:
        data = io.BytesIO.read(self, size)
        self.reads.append(len(data))
        return data

    @property
    def blocks(self) -> List[int]:
        return [n for n in self.reads if n]

    @property
    def bytes_read(self) -> int:
        return sum(self.reads)


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[[str, bytes], Path]:
    def _make_file(name: str, data: bytes) -> Path:
        path = tmp_path / name
        path.write_bytes(data)
        return path

    return _make_file


@pytest.fixture
def pattern_data() -> bytes:
    return b"ab" * 125_000


@pytest.fixture
def counting_reader() -> Callable[[bytes], CountingReader]:
    return CountingReader
