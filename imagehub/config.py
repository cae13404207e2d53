"""Centralised settings for the ImageHub manifest generator.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

:class:`Settings` is frozen: build one (or use the module-level ``settings``)
and hand it to each component explicitly.  Use :func:`dataclasses.replace`
to derive a variant, e.g. for a different Datahub URL.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass(frozen=True)
class FieldDefinition:
    """One entry of the Datahub data definition table.

    ``xpath`` is a path template relative to the harvested record; it may
    contain a ``{language}`` placeholder.  Only entries with a ``label`` end
    up in the manifest metadata block.
    """

    xpath: str
    label: Optional[str] = None


_LANG = 'descriptiveMetadata[@xml:lang="{language}"]'
_ADMIN = 'administrativeMetadata[@xml:lang="{language}"]'

DEFAULT_DATA_DEFINITION: Mapping[str, FieldDefinition] = MappingProxyType({
    "id": FieldDefinition(xpath="lidoRecID"),
    "title": FieldDefinition(
        xpath=f"{_LANG}/objectIdentificationWrap/titleWrap/titleSet/appellationValue",
        label="Title",
    ),
    "short_description": FieldDefinition(
        xpath=f"{_LANG}/objectIdentificationWrap/objectDescriptionWrap/objectDescriptionSet/descriptiveNoteValue",
    ),
    "object_number": FieldDefinition(
        xpath=f'{_LANG}/objectIdentificationWrap/repositoryWrap/repositorySet/workID[@type="object-number"]',
        label="Object number",
    ),
    "creator": FieldDefinition(
        xpath=f'{_LANG}/eventWrap/eventSet/event[eventType/term="production"]/eventActor/actorInRole/actor/nameActorSet/appellationValue',
        label="Creator",
    ),
    "creation_date": FieldDefinition(
        xpath=f'{_LANG}/eventWrap/eventSet/event[eventType/term="production"]/eventDate/displayDate',
        label="Date",
    ),
    "object_type": FieldDefinition(
        xpath=f"{_LANG}/objectClassificationWrap/objectWorkTypeWrap/objectWorkType/term",
        label="Object type",
    ),
    "publisher": FieldDefinition(
        xpath=f"{_ADMIN}/recordWrap/recordSource/legalBodyName/appellationValue",
        label="Publisher",
    ),
    "rights": FieldDefinition(
        xpath=f"{_ADMIN}/rightsWorkWrap/rightsWorkSet/creditLine",
        label="Credit line",
    ),
})

RELATED_WORKS_XPATH = f"{_LANG}/objectRelationWrap/relatedWorksWrap/relatedWorkSet"


def load_data_definition(path: Path) -> Mapping[str, FieldDefinition]:
    """Read a data definition table from a JSON file.

    The file maps field keys to ``{"xpath": ..., "label": ...}`` objects;
    ``label`` may be omitted.

    Raises:
        ValueError: If an entry has no ``xpath``.
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    table: dict[str, FieldDefinition] = {}
    for key, entry in raw.items():
        if not isinstance(entry, dict) or not entry.get("xpath"):
            raise ValueError(f"Data definition {key!r} has no xpath")
        table[key] = FieldDefinition(xpath=entry["xpath"], label=entry.get("label"))
    return MappingProxyType(table)


def _data_definition_from_env() -> Mapping[str, FieldDefinition]:
    path = os.environ.get("DATAHUB_DATA_DEFINITION")
    if path:
        return load_data_definition(Path(path))
    return DEFAULT_DATA_DEFINITION


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("IMAGEHUB_WORKSPACE", Path.home() / ".imagehub_data")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite manifest store."""
        return self.workspace_dir / "manifests.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # Public URLs
    # ------------------------------------------------------------------
    service_url: str = field(
        default_factory=lambda: os.environ.get("SERVICE_URL", "http://localhost:8000/iiif/2/")
    )
    image_service_url: str = field(
        default_factory=lambda: os.environ.get("IMAGE_SERVICE_URL", "")
    )
    related_base_url: str = field(
        default_factory=lambda: os.environ.get(
            "RELATED_BASE_URL", "https://arthub.vlaamsekunstcollectie.be/nl/catalog/"
        )
    )

    # ------------------------------------------------------------------
    # ResourceSpace
    # ------------------------------------------------------------------
    api_url: str = field(
        default_factory=lambda: os.environ.get("RESOURCESPACE_API_URL", "http://localhost/api/")
    )
    api_username: str = field(
        default_factory=lambda: os.environ.get("RESOURCESPACE_API_USERNAME", "")
    )
    api_key: str = field(
        default_factory=lambda: os.environ.get("RESOURCESPACE_API_KEY", "")
    )
    pid_field: str = field(
        default_factory=lambda: os.environ.get("RESOURCESPACE_PID_FIELD", "data_pid")
    )
    image_field: str = field(
        default_factory=lambda: os.environ.get("RESOURCESPACE_IMAGE_FIELD", "originalfilename")
    )
    duplicate_image_policy: str = field(
        default_factory=lambda: os.environ.get("DUPLICATE_IMAGE_POLICY", "first_seen")
    )

    # ------------------------------------------------------------------
    # Cantaloupe
    # ------------------------------------------------------------------
    cantaloupe_url: str = field(
        default_factory=lambda: os.environ.get("CANTALOUPE_URL", "http://localhost:8182/iiif/2/")
    )

    # ------------------------------------------------------------------
    # Datahub (OAI-PMH)
    # ------------------------------------------------------------------
    datahub_url: str = field(
        default_factory=lambda: os.environ.get("DATAHUB_URL", "http://localhost/oai")
    )
    datahub_language: str = field(
        default_factory=lambda: os.environ.get("DATAHUB_LANGUAGE", "nl")
    )
    datahub_languages: tuple[str, ...] = field(
        default_factory=lambda: _split_csv(os.environ.get("DATAHUB_LANGUAGES", "nl,en"))
    )
    namespace: str = field(
        default_factory=lambda: os.environ.get("DATAHUB_NAMESPACE", "lido")
    )
    namespace_uri: str = field(
        default_factory=lambda: os.environ.get("DATAHUB_NAMESPACE_URI", "http://www.lido-schema.org")
    )
    metadata_prefix: str = field(
        default_factory=lambda: os.environ.get("DATAHUB_METADATA_PREFIX", "oai_lido")
    )
    data_definition: Mapping[str, FieldDefinition] = field(
        default_factory=_data_definition_from_env
    )
    related_works_xpath: str = field(
        default_factory=lambda: os.environ.get("DATAHUB_RELATED_WORKS_XPATH", RELATED_WORKS_XPATH)
    )

    # ------------------------------------------------------------------
    # Networking
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    max_workers: int = field(
        default_factory=lambda: int(os.environ.get("MAX_WORKERS", "4"))
    )

    @property
    def image_base_url(self) -> str:
        """Base URL for IIIF image services; falls back to ``service_url``."""
        return self.image_service_url or self.service_url

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level default, read by the CLI:
#   from imagehub.config import settings
settings = Settings()
