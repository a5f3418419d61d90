"""Append-only conversation state fed to the model on every turn."""

from __future__ import annotations

from typing import Iterable, Iterator, Sequence, overload

from mcp_bridge.types import (
    AssistantText,
    AssistantToolRequest,
    ToolResult,
    TranscriptEntry,
    UserText,
)

__all__ = ["Transcript"]

_ENTRY_TYPES = (UserText, AssistantText, AssistantToolRequest, ToolResult)


class Transcript(Sequence[TranscriptEntry]):
    """
    Ordered history of one query.

    Entries can only be appended; indexing and iteration give a read-only
    view. A tool result must answer a request already present in the
    transcript, and a request is answered at most once.
    """

    def __init__(self, entries: Iterable[TranscriptEntry] = ()) -> None:
        self._entries: list[TranscriptEntry] = []
        self._answered: set[str] = set()
        self._requested: set[str] = set()
        self.extend(entries)

    def append(self, entry: TranscriptEntry) -> None:
        self.extend((entry,))

    def extend(self, entries: Iterable[TranscriptEntry]) -> None:
        """Append *entries* in order; if any is rejected, none are appended."""
        staged = list(entries)
        requested = set(self._requested)
        answered = set(self._answered)
        for entry in staged:
            self._check(entry, requested, answered)

        self._entries.extend(staged)
        self._requested = requested
        self._answered = answered

    @staticmethod
    def _check(entry: TranscriptEntry, requested: set[str], answered: set[str]) -> None:
        if not isinstance(entry, _ENTRY_TYPES):
            raise TypeError(f"Not a transcript entry: {type(entry).__name__}")

        if isinstance(entry, AssistantToolRequest):
            if entry.id in requested:
                raise ValueError(f"Duplicate tool request id {entry.id!r}")
            requested.add(entry.id)
        elif isinstance(entry, ToolResult):
            if entry.request_id not in requested:
                raise ValueError(
                    f"Tool result {entry.id!r} answers unknown request {entry.request_id!r}"
                )
            if entry.request_id in answered:
                raise ValueError(f"Tool request {entry.request_id!r} already answered")
            answered.add(entry.request_id)

    def request_ids(self) -> frozenset[str]:
        """Ids of every tool request recorded so far."""
        return frozenset(self._requested)

    def unpaired_requests(self) -> list[AssistantToolRequest]:
        """Tool requests that have no result yet, in transcript order."""
        return [
            e
            for e in self._entries
            if isinstance(e, AssistantToolRequest) and e.id not in self._answered
        ]

    @property
    def is_consistent(self) -> bool:
        """True when every tool request has been answered."""
        return self._requested == self._answered

    def tool_exchanges(self) -> list[tuple[AssistantToolRequest, ToolResult]]:
        """Request/result pairs in request order."""
        results = {e.request_id: e for e in self._entries if isinstance(e, ToolResult)}
        return [
            (e, results[e.id])
            for e in self._entries
            if isinstance(e, AssistantToolRequest) and e.id in results
        ]

    @overload
    def __getitem__(self, index: int) -> TranscriptEntry: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[TranscriptEntry, ...]: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return tuple(self._entries[index])
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(tuple(self._entries))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(entries={len(self._entries)})"
