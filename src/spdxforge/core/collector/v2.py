"""File collector for SPDX 2.3 documents."""

from __future__ import annotations

from typing import Any

from spdxforge.core.collector.base import CollectedFile, FileCollector
from spdxforge.core.model.licenses import NOASSERTION
from spdxforge.core.model.v2 import Checksum, Snippet, SpdxFile, SpdxPackage, VerificationCode
from spdxforge.core.project import SnippetInfo


class SpdxV2FileCollector(FileCollector):
    """Files are flat document entries linked by ``CONTAINS`` relationships."""

    def _create_file(self, entry: CollectedFile) -> SpdxFile:
        info = entry.info
        spdx_file = SpdxFile(
            spdx_id=self.document.new_id(entry.path),
            file_name=entry.path,
            checksums=[Checksum(algorithm, value) for algorithm, value in entry.checksums.items()],
            file_types=list(entry.file_types),
            copyright_text=info.copyright_text or NOASSERTION,
            comment=info.comment,
            notice=info.notice,
            contributors=[c for c in info.contributors if c.strip()],
        )
        self.document.files.append(spdx_file)
        return spdx_file

    def _create_snippet(self, entry: CollectedFile, snippet: SnippetInfo, index: int) -> Snippet:
        spdx_snippet = Snippet(
            spdx_id=self.document.new_id(f"{entry.path}#snippet-{index}"),
            file_id=entry.element.spdx_id,
            byte_range=snippet.byte_bounds(),
            line_range=snippet.line_bounds(),
            name=snippet.name,
            comment=snippet.comment,
            copyright_text=snippet.copyright_text or NOASSERTION,
            license_comments=snippet.license_comment,
        )
        self.document.snippets.append(spdx_snippet)
        return spdx_snippet

    def _link_files(self, package: SpdxPackage, entries: list[CollectedFile]) -> None:
        package.files_analyzed = True
        for entry in entries:
            self.document.add_relationship(package.spdx_id, "CONTAINS", entry.element.spdx_id)

    def _set_verification_code(self, package: Any, value: str, excluded: list[str]) -> None:
        package.verification_code = VerificationCode(value, list(excluded))
