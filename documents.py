"""Drive/Docs link extraction and document text fetching."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from errors import DocumentFetchError
from schemas import DocumentAttachment

logger = logging.getLogger(__name__)

GOOGLE_DOC_MIME = "application/vnd.google-apps.document"
GOOGLE_SHEET_MIME = "application/vnd.google-apps.spreadsheet"
PDF_MIME = "application/pdf"

DOC_LINK = re.compile(r"https://docs\.google\.com/document/d/([a-zA-Z0-9_-]+)")
SHEET_LINK = re.compile(r"https://docs\.google\.com/spreadsheets/d/([a-zA-Z0-9_-]+)")
FILE_LINK = re.compile(r"https://drive\.google\.com/file/d/([a-zA-Z0-9_-]+)")

_LINK_PATTERNS = (
    (DOC_LINK, "doc", "Document"),
    (SHEET_LINK, "sheet", "Spreadsheet"),
    (FILE_LINK, "other", "File"),
)


def _classify_attachment(attachment: dict) -> str | None:
    mime_type = attachment.get("mimeType")
    if mime_type == GOOGLE_DOC_MIME:
        return "doc"
    if mime_type == GOOGLE_SHEET_MIME:
        return "sheet"
    if mime_type == PDF_MIME:
        return "pdf"
    if "drive.google.com" in (attachment.get("fileUrl") or ""):
        return "other"
    return None


def extract_document_links(
    description: str | None = None,
    calendar_attachments: Iterable[dict] | None = None,
) -> list[DocumentAttachment]:
    """Collect document attachments for an event.

    Provider-supplied attachments (Google Calendar ``attachments`` entries
    with ``fileId``, ``title``, ``mimeType``, ``fileUrl``) come first and are
    classified by MIME type. Bare links in the description are then matched
    by three independent patterns: Docs, Sheets and Drive files.
    """
    links: list[DocumentAttachment] = []

    for attachment in calendar_attachments or []:
        kind = _classify_attachment(attachment)
        if kind is None:
            continue
        links.append(
            DocumentAttachment(
                id=attachment.get("fileId") or attachment.get("fileUrl"),
                title=attachment.get("title") or "Untitled Document",
                url=attachment.get("fileUrl") or "",
                type=kind,
            )
        )

    if not description:
        return links

    for pattern, kind, label in _LINK_PATTERNS:
        for match in pattern.finditer(description):
            file_id = match.group(1)
            links.append(
                DocumentAttachment(
                    id=file_id,
                    title=f"{label} {file_id}",
                    url=match.group(0),
                    type=kind,
                )
            )

    return links


def extract_text(content: list[dict]) -> str:
    """Flatten a Docs API ``body.content`` list into plain text."""
    return _walk(content).strip()


def _walk(content: list[dict]) -> str:
    text = ""
    for element in content:
        if "paragraph" in element:
            for part in element["paragraph"].get("elements") or []:
                text += (part.get("textRun") or {}).get("content") or ""
            text += "\n"
        elif "table" in element:
            for row in element["table"].get("tableRows") or []:
                cells = row.get("tableCells")
                if cells is None:
                    continue
                for cell in cells:
                    if "content" in cell:
                        text += _walk(cell["content"]).strip() + "\t"
                text += "\n"
    return text


@dataclass
class FetchedDocument:
    id: str
    title: str
    content: str
    url: str


class DocumentFetcher:
    """Reads Google Docs text with a user's OAuth access token.

    The token must carry the ``drive.readonly`` and ``documents.readonly``
    scopes in addition to calendar access.
    """

    def _service(self, name, version, access_token):
        return build(
            name, version,
            credentials=Credentials(token=access_token),
            cache_discovery=False,
        )

    def fetch_document(self, access_token: str, document_id: str) -> FetchedDocument:
        try:
            drive = self._service("drive", "v3", access_token)
            metadata = drive.files().get(
                fileId=document_id, fields="id,name,webViewLink"
            ).execute()

            docs = self._service("docs", "v1", access_token)
            document = docs.documents().get(documentId=document_id).execute()
        except Exception as e:
            raise DocumentFetchError(f"Failed to fetch document {document_id}: {e}") from e

        return FetchedDocument(
            id=document_id,
            title=metadata.get("name") or "Untitled Document",
            content=extract_text(document.get("body", {}).get("content", [])),
            url=metadata.get("webViewLink")
            or f"https://docs.google.com/document/d/{document_id}",
        )

    def has_drive_access(self, access_token: str) -> bool:
        try:
            drive = self._service("drive", "v3", access_token)
            drive.about().get(fields="user").execute()
            return True
        except Exception as e:
            logger.warning(f"Drive permission check failed: {e}")
            return False

    def enrich_attachments(
        self,
        attachments: list[DocumentAttachment] | None,
        access_token: str | None,
    ) -> int:
        """Fill ``content`` on doc attachments in place; returns how many were filled.

        A failed fetch leaves that attachment without content and moves on.
        """
        if not attachments:
            return 0
        if not access_token:
            logger.info("No access token available for document fetching")
            return 0

        filled = 0
        for attachment in attachments:
            if attachment.type != "doc" or attachment.content:
                continue
            try:
                document = self.fetch_document(access_token, attachment.id)
            except DocumentFetchError as e:
                logger.error(f"Skipping attachment {attachment.id}: {e}")
                continue
            logger.info(
                f"Fetched document {attachment.id}: {len(document.content)} characters"
            )
            attachment.content = document.content
            filled += 1
        return filled
