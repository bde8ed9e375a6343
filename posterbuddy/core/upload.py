"""Bulk upload: group <name>_poster/_logo/_info files into poster records; info file export.

Info files are plain `Key: value` lines:

    Name: The Last Dragon
    Description: In a realm of magic and myth...
    a second description line
    Starring: Zendaya, Tom Holland
    Rating: PG-13

Text before the first key and lines without a recognised key that follow
`Description:` belong to the description.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from posterbuddy.core.errors import ValidationFailure
from posterbuddy.core.images import guess_content_type, resize_poster, to_data_url
from posterbuddy.models.poster import PLACEHOLDER_LOGO_URL, Poster, UploadedFile

logger = logging.getLogger(__name__)

_FILE_PATTERN = re.compile(r"^(.+?)_(poster|logo|info)\.\w+$", re.IGNORECASE)

INFO_KEYS = ("name", "description", "starring", "director", "runtime", "genre", "rating")
REQUIRED_PARTS = ("poster", "info")


@dataclass
class FileGroup:
    poster: Optional[UploadedFile] = None
    logo: Optional[UploadedFile] = None
    info: Optional[UploadedFile] = None

    def missing(self) -> List[str]:
        return [part for part in REQUIRED_PARTS if getattr(self, part) is None]


@dataclass
class UploadPlan:
    """Poster field dicts ready to add, keyed by group name, plus rejected groups."""
    items: List[Tuple[str, Dict[str, str]]] = field(default_factory=list)
    rejected: List[Tuple[str, str]] = field(default_factory=list)


def _base_filename(filename: str) -> str:
    return filename.replace("\\", "/").rsplit("/", 1)[-1]


def group_files(files: Iterable[UploadedFile]) -> Dict[str, FileGroup]:
    """Group by shared basename; files that do not follow the naming scheme are skipped."""
    groups: Dict[str, FileGroup] = {}
    for upload in files:
        match = _FILE_PATTERN.match(_base_filename(upload.filename))
        if not match:
            logger.debug("Upload: ignoring %s", upload.filename)
            continue
        name, part = match.group(1), match.group(2).lower()
        setattr(groups.setdefault(name, FileGroup()), part, upload)
    return groups


def parse_info(text: str) -> Dict[str, str]:
    info: Dict[str, str] = {}
    description: List[str] = []
    current = "description"
    for raw in text.splitlines():
        line = raw.strip()
        key, sep, value = line.partition(":")
        key = re.sub(r"\s", "", key).lower()
        if sep and key in INFO_KEYS:
            current = key
            value = value.strip()
            if key == "description":
                if value:
                    description.append(value)
            else:
                info[key] = value
        elif line and current == "description":
            description.append(line)
    info["description"] = "\n".join(description)
    return info


def build_poster_fields(name: str, group: FileGroup) -> Dict[str, str]:
    """Poster attributes for one complete group. Raises ValidationFailure."""
    missing = group.missing()
    if missing:
        raise ValidationFailure(f"{name}: missing {' and '.join(missing)} file")
    info = parse_info(group.info.data.decode("utf-8-sig", errors="replace"))
    poster_url = resize_poster(group.poster.data, group.poster.filename, group.poster.content_type)
    if group.logo is not None:
        logo_url = to_data_url(
            group.logo.data, guess_content_type(group.logo.filename, group.logo.content_type)
        )
    else:
        logo_url = PLACEHOLDER_LOGO_URL
    return {
        "name": info.get("name") or name.replace("_", " "),
        "poster_url": poster_url,
        "logo_url": logo_url,
        "description": info.get("description", ""),
        "starring": info.get("starring", ""),
        "director": info.get("director", ""),
        "runtime": info.get("runtime", ""),
        "genre": info.get("genre", ""),
        "rating": info.get("rating", ""),
        "poster_ai_hint": f"movie poster for {name}",
    }


def plan_upload(files: Iterable[UploadedFile], missing_policy: str = "report") -> UploadPlan:
    """Build one poster per complete group.

    Incomplete groups are reported under the "report" policy and dropped
    quietly under "discard". Unreadable posters are always reported.
    """
    plan = UploadPlan()
    for name, group in group_files(files).items():
        missing = group.missing()
        if missing and missing_policy == "discard":
            logger.debug("Upload: discarding %s (missing %s)", name, ", ".join(missing))
            continue
        try:
            plan.items.append((name, build_poster_fields(name, group)))
        except ValidationFailure as e:
            plan.rejected.append((name, e.message))
    return plan


def render_info_file(poster: Poster) -> str:
    return "\n".join(
        [
            f"Name: {poster.name}",
            f"Description: {poster.description}",
            f"Starring: {poster.starring}",
            f"Director: {poster.director}",
            f"Runtime: {poster.runtime}",
            f"Genre: {poster.genre}",
            f"Rating: {poster.rating}",
        ]
    )


def info_filename(poster: Poster) -> str:
    return re.sub(r"\s+", "_", poster.name or poster.id) + "_info.txt"
