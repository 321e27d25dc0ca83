"""File collector for SPDX 3.0.1 documents.

Files carry a software purpose and, where one is known, a media type, both
derived from the first file type of the extension table.  Contributors
become ``Person`` agents referenced through ``originatedBy``.
"""

from __future__ import annotations

from spdxforge.core.collector.base import CollectedFile, FileCollector
from spdxforge.core.model.licenses import NOASSERTION
from spdxforge.core.model.v3 import File, Hash, Package, PackageVerificationCode, Snippet
from spdxforge.core.project import SnippetInfo

# SPDX 2 file type -> SPDX 3 software purpose.
FILE_TYPE_PURPOSES: dict[str, str] = {
    "SOURCE": "source",
    "BINARY": "library",
    "ARCHIVE": "archive",
    "APPLICATION": "application",
    "DOCUMENTATION": "documentation",
    "SPDX": "bom",
    "OTHER": "other",
}

FILE_TYPE_MEDIA_TYPES: dict[str, str] = {
    "SOURCE": "text/plain",
    "BINARY": "application/octet-stream",
    "AUDIO": "audio/*",
    "IMAGE": "image/*",
    "TEXT": "text/plain",
    "VIDEO": "video/*",
    "SPDX": "application/spdx",
}


def purposes_for(file_types: tuple[str, ...]) -> tuple[str, list[str]]:
    """Primary and additional purposes for a file's types."""
    purposes: list[str] = []
    for file_type in file_types:
        purpose = FILE_TYPE_PURPOSES.get(file_type)
        if purpose is not None and purpose not in purposes:
            purposes.append(purpose)
    if not purposes:
        return "other", []
    return purposes[0], purposes[1:]


def media_type_for(file_types: tuple[str, ...]) -> str:
    for file_type in file_types:
        media_type = FILE_TYPE_MEDIA_TYPES.get(file_type)
        if media_type is not None:
            return media_type
    return ""


class SpdxV3FileCollector(FileCollector):
    """Files are graph elements linked by one ``contains`` relationship."""

    def _create_file(self, entry: CollectedFile) -> File:
        info = entry.info
        primary, additional = purposes_for(entry.file_types)
        spdx_file = File(
            spdx_id=self.document.new_id(entry.path),
            name=entry.path,
            comment=info.comment,
            verified_using=[Hash(algorithm, value) for algorithm, value in entry.checksums.items()],
            primary_purpose=primary,
            additional_purposes=additional,
            content_type=media_type_for(entry.file_types),
            copyright_text=info.copyright_text or NOASSERTION,
            attribution_texts=[info.notice] if info.notice else [],
            originated_by=[
                self.document.agent(c.strip(), "Person", "Contributor")
                for c in info.contributors
                if c.strip()
            ],
        )
        self.document.add(spdx_file)
        return spdx_file

    def _create_snippet(self, entry: CollectedFile, snippet: SnippetInfo, index: int) -> Snippet:
        comment = snippet.comment
        if snippet.license_comment.strip():
            comment = f"{comment}; License: {snippet.license_comment}"
        spdx_snippet = Snippet(
            spdx_id=self.document.new_id(f"{entry.path}#snippet-{index}"),
            name=snippet.name,
            comment=comment,
            snippet_from_file=entry.element.spdx_id,
            byte_range=snippet.byte_bounds(),
            line_range=snippet.line_bounds(),
            copyright_text=snippet.copyright_text or NOASSERTION,
        )
        self.document.add(spdx_snippet)
        return spdx_snippet

    def _link_files(self, package: Package, entries: list[CollectedFile]) -> None:
        if entries:
            self.document.relate(
                package.spdx_id, "contains", [entry.element.spdx_id for entry in entries],
            )

    def _set_verification_code(self, package: Package, value: str, excluded: list[str]) -> None:
        package.verified_using = [
            v for v in package.verified_using if not isinstance(v, PackageVerificationCode)
        ]
        package.verified_using.append(PackageVerificationCode(value, list(excluded)))
