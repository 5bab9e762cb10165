"""Ordered payload sources for the fuzzer."""

from abc import ABC, abstractmethod
from typing import Generic, Iterable, Iterator, List, TypeVar

T = TypeVar("T")


class PayloadModel(ABC, Generic[T]):
    """Each iteration starts from the first payload and moves forward only."""

    @abstractmethod
    def __iter__(self) -> Iterator[T]:
        ...

    @abstractmethod
    def size(self) -> int:
        ...

    def __len__(self):
        return self.size()


class StringPayloadModel(PayloadModel[str]):
    def __init__(self, payloads: Iterable[str] = ()):
        self._payloads: List[str] = list(payloads)

    @classmethod
    def from_file(cls, filename: str) -> "StringPayloadModel":
        """One payload per line; blank lines are skipped."""
        with open(filename, 'r', encoding='utf-8', errors='ignore') as f:
            return cls(line.rstrip("\r\n") for line in f if line.strip())

    def add(self, payload: str):
        self._payloads.append(payload)

    def remove(self, payload: str):
        if payload in self._payloads:
            self._payloads.remove(payload)

    def remove_duplicates(self):
        self._payloads = list(dict.fromkeys(self._payloads))

    def clear(self):
        self._payloads.clear()

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._payloads))

    def size(self) -> int:
        return len(self._payloads)


class NumericPayloadModel(PayloadModel[str]):
    """start..stop inclusive by step, left-padded with zeros to min_digits."""

    def __init__(self, start: int, stop: int, step: int = 1, min_digits: int = 0):
        self.start = start
        self.stop = stop
        self.step = step
        self.min_digits = max(0, min_digits)

    @classmethod
    def parse(cls, text: str) -> "NumericPayloadModel":
        """FROM:TO[:STEP[:DIGITS]]"""
        parts = [int(p) for p in text.split(":")]
        if len(parts) < 2 or len(parts) > 4:
            raise ValueError(f"Invalid numeric range: {text!r}")
        return cls(*parts)

    def _format(self, n: int) -> str:
        return str(n).zfill(self.min_digits)

    def __iter__(self) -> Iterator[str]:
        if self.step <= 0:
            return iter(())
        return (self._format(n) for n in range(self.start, self.stop + 1, self.step))

    def size(self) -> int:
        if self.step <= 0 or self.stop < self.start:
            return 0
        return (self.stop - self.start) // self.step + 1
