"""Probed media source references (pure Python, no Qt dependency)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Source:
    """Read-only metadata of a probed media file.

    The engine never owns sources; segments refer to them by *source_id*.
    """

    source_id: str
    duration: float         # Seconds
    has_video: bool = False
    has_audio: bool = False
    name: str = ""

    @property
    def media_kind(self) -> str:
        if self.has_video:
            return "video"
        if self.has_audio:
            return "audio"
        return "none"

    def to_dict(self) -> dict:
        return {
            "source_id": self.source_id,
            "duration": self.duration,
            "has_video": self.has_video,
            "has_audio": self.has_audio,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Source:
        return cls(
            source_id=data["source_id"],
            duration=float(data["duration"]),
            has_video=data.get("has_video", False),
            has_audio=data.get("has_audio", False),
            name=data.get("name", ""),
        )


class SourceCatalog:
    """In-memory id → Source lookup supplied to the timeline.

    Anything with a ``get_source(source_id)`` method can stand in for it.
    """

    def __init__(self, sources: list[Source] | None = None) -> None:
        self._sources: dict[str, Source] = {}
        for source in sources or []:
            self.add_source(source)

    def add_source(self, source: Source) -> None:
        if source.duration <= 0:
            raise ValueError(f"Source {source.source_id} has no duration ({source.duration})")
        self._sources[source.source_id] = source

    def get_source(self, source_id: str) -> Source | None:
        return self._sources.get(source_id)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self):
        return iter(self._sources.values())
