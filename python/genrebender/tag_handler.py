"""Tag reading and genre write-back using mutagen for cross-format support."""

import logging
from pathlib import Path
from typing import List

from mutagen import MutagenError
from mutagen.flac import FLAC
from mutagen.id3 import TALB, TCON, TIT2, TPE1
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4

from genrebender.exceptions import MetadataReadError
from genrebender.models import Query

logger = logging.getLogger(__name__)


class TagHandler:
    """Reads search fields from audio files and writes genres back."""

    SUPPORTED_EXTENSIONS = {".mp3", ".flac", ".m4a"}

    # Text field name -> (ID3 frame class, MP4 atom). FLAC uses the name itself.
    FIELDS = {
        "title": (TIT2, "\xa9nam"),
        "artist": (TPE1, "\xa9ART"),
        "album": (TALB, "\xa9alb"),
        "genre": (TCON, "\xa9gen"),
    }

    @classmethod
    def is_supported(cls, file_path: str) -> bool:
        """Check if file format is supported."""
        return Path(file_path).suffix.lower() in cls.SUPPORTED_EXTENSIONS

    def _open(self, file_path: str):
        ext = Path(file_path).suffix.lower()
        try:
            if ext == ".mp3":
                return MP3(file_path)
            elif ext == ".flac":
                return FLAC(file_path)
            elif ext == ".m4a":
                return MP4(file_path)
        except (MutagenError, OSError) as e:
            raise MetadataReadError(file_path, str(e)) from e
        raise MetadataReadError(file_path, f"unsupported format '{ext}'")

    def read_field(self, file_path: str, name: str) -> List[str]:
        """
        Read all values of a text field.

        Args:
            file_path: Path to audio file
            name: One of FIELDS ("title", "artist", "album", "genre")

        Returns:
            Field values; empty list if the field is absent.
        """
        return self._values(self._open(file_path), name)

    def read_query(self, file_path: str) -> Query:
        """
        Build a search Query from a file's tags and stream length.

        Missing tags become empty strings rather than errors, so callers
        can decide whether the query is worth sending.

        Raises:
            MetadataReadError: If the file cannot be opened or parsed.
        """
        audio = self._open(file_path)

        def first(name: str) -> str:
            values = self._values(audio, name)
            return values[0].strip() if values else ""

        length = getattr(audio.info, "length", 0) or 0
        return Query(
            artist=first("artist"),
            title=first("title"),
            album=first("album"),
            duration_ms=int(round(length * 1000)),
        )

    def write_field(self, file_path: str, name: str, values: List[str],
                    replace: bool = True) -> bool:
        """
        Write a text field.

        Args:
            file_path: Path to audio file
            name: One of FIELDS
            values: Values to store; blanks are dropped
            replace: Overwrite existing values (True) or append to them

        Returns:
            True if successful, False otherwise
        """
        values = [v.strip() for v in values if v and v.strip()]
        try:
            audio = self._open(file_path)
            if not replace:
                existing = self._values(audio, name)
                seen = {v.lower() for v in existing}
                values = existing + [v for v in values if v.lower() not in seen]
            self._set_values(audio, name, values)
            audio.save()
            return True
        except (MetadataReadError, MutagenError, OSError) as e:
            logger.error(f"Error writing {name} to {file_path}: {e}")
            return False

    def write_genres(self, file_path: str, genres: List[str],
                     replace: bool = True) -> bool:
        return self.write_field(file_path, "genre", genres, replace=replace)

    def _values(self, audio, name: str) -> List[str]:
        frame_cls, mp4_atom = self.FIELDS[name]
        tags = audio.tags
        if tags is None:
            return []
        if isinstance(audio, MP3):
            frame = tags.get(frame_cls.__name__)
            return [str(v) for v in frame.text] if frame is not None else []
        if isinstance(audio, MP4):
            return [str(v) for v in tags.get(mp4_atom, [])]
        return list(tags.get(name, []))

    def _set_values(self, audio, name: str, values: List[str]) -> None:
        frame_cls, mp4_atom = self.FIELDS[name]
        if audio.tags is None:
            audio.add_tags()
        if isinstance(audio, MP3):
            audio.tags.delall(frame_cls.__name__)
            if values:
                audio.tags.add(frame_cls(encoding=3, text=values))
        elif isinstance(audio, MP4):
            if values:
                audio.tags[mp4_atom] = values
            elif mp4_atom in audio.tags:
                del audio.tags[mp4_atom]
        else:
            if values:
                audio[name] = values
            elif name in audio:
                del audio[name]
