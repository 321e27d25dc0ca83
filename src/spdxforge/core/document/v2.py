"""Document builder for SPDX 2.3."""

from __future__ import annotations

from spdxforge import TOOL_CREATOR
from spdxforge.config import SchemaGeneration
from spdxforge.core.collector.v2 import SpdxV2FileCollector
from spdxforge.core.dependency.base import is_download_location
from spdxforge.core.dependency.v2 import SpdxV2DependencyMapper
from spdxforge.core.document.base import DocumentBuilder
from spdxforge.core.identifiers import purl_external_ref, to_v2_external_ref
from spdxforge.core.licenses.v2 import SpdxV2LicenseManager
from spdxforge.core.model.licenses import NOASSERTION, AnyLicenseInfo, NoAssertionLicense, NoneLicense
from spdxforge.core.model.v2 import Annotation, Checksum, SpdxDocument, SpdxPackage, VerificationCode
from spdxforge.core.project import Annotation as ProjectAnnotation
from spdxforge.core.project import Packaging


def actor(text: str) -> str:
    """An SPDX 2 actor string; bare names are taken to be organizations."""
    text = text.strip()
    if not text or text == NOASSERTION or text.startswith(("Person:", "Organization:", "Tool:")):
        return text
    return f"Organization: {text}"


def to_annotation(annotation: ProjectAnnotation) -> Annotation:
    return Annotation(
        annotator=annotation.annotator,
        date=annotation.date,
        annotation_type=annotation.annotation_type,
        comment=annotation.comment,
    )


class SpdxV2DocumentBuilder(DocumentBuilder):
    """Builds a flat SPDX 2.3 document: packages, files, snippets, relationships."""

    generation = SchemaGeneration.V2
    document: SpdxDocument

    def _create_document(self) -> SpdxDocument:
        project = self.project
        return SpdxDocument(
            name=project.package_name,
            namespace=project.document_namespace or project.default_namespace(),
            created=self.created,
            creators=[TOOL_CREATOR],
            creator_comment=project.creator_comment,
            license_list_version=self.registry.list_version,
            comment=project.document_comment,
            annotations=[to_annotation(a) for a in project.document_annotations],
        )

    def _create_license_manager(self) -> SpdxV2LicenseManager:
        return SpdxV2LicenseManager(
            self.document,
            self.registry,
            combination=self.options.license_combination,
            match_urls=self.options.match_licenses_on_cross_reference_urls,
        )

    def _create_collector(self) -> SpdxV2FileCollector:
        return SpdxV2FileCollector(
            self.document,
            checksum_algorithms=self.options.checksum_algorithms,
            continue_on_error=self.options.continue_on_error,
            hash_workers=self.options.hash_workers,
        )

    def _create_mapper(self) -> SpdxV2DependencyMapper:
        return SpdxV2DependencyMapper(
            self.document,
            self.license_manager,
            include_transitive=self.options.include_transitive_dependencies,
            use_artifact_id_as_name=self.options.use_artifact_id_as_name,
            create_external_refs=self.options.create_external_refs,
            generate_purls=self.options.generate_purls,
            license_overwrites=self.project.license_overwrites,
        )

    def _add_creators(self, creators: list[str]) -> None:
        self.document.creators.extend(c for c in creators if c not in self.document.creators)

    def _create_project_package(self, checksums: dict[str, str]) -> SpdxPackage:
        project = self.project
        coordinate = project.coordinate
        refs = [to_v2_external_ref(ref) for ref in project.external_references]
        if self.options.generate_purls:
            refs.insert(0, purl_external_ref(coordinate))
        archive = project.package_archive
        package = SpdxPackage(
            spdx_id=self.document.new_id(f"{coordinate.namespace}:{coordinate.name}:{coordinate.version}"),
            name=project.package_name,
            version=coordinate.version,
            supplier=actor(project.supplier),
            originator=actor(project.originator),
            download_location=self._download_location(),
            files_analyzed=True,
            verification_code=VerificationCode(),
            checksums=[Checksum(algorithm, value) for algorithm, value in checksums.items()],
            home_page=project.home_page if is_download_location(project.home_page) else "",
            source_info=project.source_info,
            copyright_text=project.copyright_text or NOASSERTION,
            summary=project.short_description,
            description=project.description,
            primary_purpose=Packaging.purpose_for(project.packaging),
            package_file_name=archive.name if archive is not None else "",
            external_refs=refs,
            annotations=[to_annotation(a) for a in project.package_annotations],
        )
        self.document.packages.append(package)
        self.document.add_relationship(self.document.spdx_id, "DESCRIBES", package.spdx_id)
        return package

    def _after_licenses(self) -> None:
        # licenseInfoFromFiles: every distinct license named in the files.
        seen: list[AnyLicenseInfo] = []
        for spdx_file in self.document.files_of(self.package.spdx_id):
            for info in spdx_file.license_info_in_file:
                for leaf in info.leaves():
                    if isinstance(leaf, (NoAssertionLicense, NoneLicense)) or leaf in seen:
                        continue
                    seen.append(leaf)
        self.package.license_info_from_files = seen
