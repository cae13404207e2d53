"""Shared fixtures: test settings and LIDO / OAI-PMH record builders."""

from __future__ import annotations

from typing import Callable, Optional

import pytest

from imagehub.config import DEFAULT_DATA_DEFINITION, RELATED_WORKS_XPATH, Settings

LIDO_NS = "http://www.lido-schema.org"


@pytest.fixture()
def settings(tmp_path) -> Settings:
    """Settings pointing at fake hosts and a temporary workspace."""
    return Settings(
        workspace_dir=tmp_path,
        service_url="https://hub.test/iiif/2/",
        image_service_url="",
        related_base_url="https://arthub.test/nl/catalog/",
        api_url="https://rs.test/api/?",
        api_username="imagehub",
        api_key="secret",
        pid_field="data_pid",
        image_field="originalfilename",
        duplicate_image_policy="first_seen",
        cantaloupe_url="https://img.test/iiif/2/",
        datahub_url="https://dh.test/oai",
        datahub_language="nl",
        datahub_languages=("nl", "en"),
        namespace="lido",
        namespace_uri=LIDO_NS,
        metadata_prefix="oai_lido",
        data_definition=DEFAULT_DATA_DEFINITION,
        related_works_xpath=RELATED_WORKS_XPATH,
        request_timeout=5.0,
        max_workers=1,
    )


def _related_set(related_id: Optional[str], kind: Optional[str], sort_order: Optional[int]) -> str:
    attrs = f' lido:sortorder="{sort_order}"' if sort_order is not None else ""
    work = ""
    if related_id is not None:
        work = (
            "<lido:relatedWork><lido:object>"
            '<lido:objectID lido:type="local">ignored</lido:objectID>'
            f'<lido:objectID lido:type="oai">{related_id}</lido:objectID>'
            "</lido:object></lido:relatedWork>"
        )
    rel_type = ""
    if kind is not None:
        rel_type = (
            "<lido:relatedWorkRelType>"
            f'<lido:conceptID lido:type="URI">http://purl.org/dc/terms/{kind}</lido:conceptID>'
            "<lido:term>relation</lido:term>"
            "</lido:relatedWorkRelType>"
        )
    return f"<lido:relatedWorkSet{attrs}>{work}{rel_type}</lido:relatedWorkSet>"


def build_lido(
    data_id: str,
    titles: Optional[dict[str, str]] = None,
    descriptions: Optional[dict[str, str]] = None,
    publisher: Optional[str] = None,
    related: Optional[list[tuple]] = None,
) -> str:
    """Return a minimal LIDO record.

    ``related`` holds ``(data_id, kind, sort_order)`` tuples; any item may be
    ``None`` to leave that part out.
    """
    titles = titles if titles is not None else {"nl": f"Titel {data_id}", "en": f"Title {data_id}"}
    descriptions = descriptions or {}
    languages = list(dict.fromkeys(list(titles) + list(descriptions) + ["nl"]))

    blocks = []
    for language in languages:
        title = titles.get(language)
        description = descriptions.get(language)
        ident = ""
        if title is not None:
            ident += (
                "<lido:titleWrap><lido:titleSet>"
                f"<lido:appellationValue>{title}</lido:appellationValue>"
                "</lido:titleSet></lido:titleWrap>"
            )
        if description is not None:
            ident += (
                "<lido:objectDescriptionWrap><lido:objectDescriptionSet>"
                f"<lido:descriptiveNoteValue>{description}</lido:descriptiveNoteValue>"
                "</lido:objectDescriptionSet></lido:objectDescriptionWrap>"
            )
        relations = ""
        if language == "nl" and related:
            relations = (
                "<lido:objectRelationWrap><lido:relatedWorksWrap>"
                + "".join(_related_set(*item) for item in related)
                + "</lido:relatedWorksWrap></lido:objectRelationWrap>"
            )
        blocks.append(
            f'<lido:descriptiveMetadata xml:lang="{language}">'
            f"<lido:objectIdentificationWrap>{ident}</lido:objectIdentificationWrap>"
            f"{relations}"
            "</lido:descriptiveMetadata>"
        )

    admin = ""
    if publisher is not None:
        admin = (
            '<lido:administrativeMetadata xml:lang="nl"><lido:recordWrap><lido:recordSource>'
            f"<lido:legalBodyName><lido:appellationValue>{publisher}</lido:appellationValue></lido:legalBodyName>"
            "</lido:recordSource></lido:recordWrap></lido:administrativeMetadata>"
        )

    return (
        f'<lido:lido xmlns:lido="{LIDO_NS}">'
        f'<lido:lidoRecID lido:type="local">{data_id}</lido:lidoRecID>'
        + "".join(blocks)
        + admin
        + "</lido:lido>"
    )


def wrap_oai(data_id: str, lido: str) -> str:
    """Wrap a LIDO record in an OAI-PMH ``GetRecord`` response."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<OAI-PMH xmlns="http://www.openarchives.org/OAI/2.0/">'
        "<responseDate>2024-01-01T00:00:00Z</responseDate>"
        '<request verb="GetRecord">https://dh.test/oai</request>'
        "<GetRecord><record>"
        f"<header><identifier>{data_id}</identifier><datestamp>2024-01-01</datestamp></header>"
        f"<metadata>{lido}</metadata>"
        "</record></GetRecord></OAI-PMH>"
    )


def oai_error(code: str = "idDoesNotExist", message: str = "No matching identifier") -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<OAI-PMH xmlns="http://www.openarchives.org/OAI/2.0/">'
        "<responseDate>2024-01-01T00:00:00Z</responseDate>"
        f'<error code="{code}">{message}</error>'
        "</OAI-PMH>"
    )


@pytest.fixture()
def lido() -> Callable[..., str]:
    return build_lido


@pytest.fixture()
def oai() -> Callable[[str, str], str]:
    return wrap_oai


@pytest.fixture()
def oai_error_body() -> Callable[..., str]:
    return oai_error
