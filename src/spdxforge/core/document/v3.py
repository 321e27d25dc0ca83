"""Document builder for SPDX 3.0.1.

The document's root element is a ``software_Sbom`` whose root element is
the project package.  Every element the build creates is listed in both.
The creating agents and the tool live on the shared ``CreationInfo``.
"""

from __future__ import annotations

from typing import Any

from spdxforge import TOOL_NAME, __version__
from spdxforge.config import SchemaGeneration
from spdxforge.core.collector.v3 import SpdxV3FileCollector
from spdxforge.core.dependency.base import is_download_location
from spdxforge.core.dependency.v3 import SpdxV3DependencyMapper, actor_agent
from spdxforge.core.document.base import DocumentBuilder
from spdxforge.core.identifiers import package_url, to_v3_reference
from spdxforge.core.licenses.v3 import SpdxV3LicenseManager
from spdxforge.core.model.licenses import NOASSERTION, ListedLicense
from spdxforge.core.model.v2 import NULL_SHA1
from spdxforge.core.model.v3 import (
    Annotation,
    CreationInfo,
    ExternalIdentifier,
    ExternalRef,
    Hash,
    Package,
    PackageVerificationCode,
    Sbom,
    SpdxDocument,
    Tool,
)
from spdxforge.core.project import Annotation as ProjectAnnotation
from spdxforge.core.project import Packaging

DATA_LICENSE = "CC0-1.0"


class SpdxV3DocumentBuilder(DocumentBuilder):
    """Builds an SPDX 3.0.1 element graph serialised as JSON-LD."""

    generation = SchemaGeneration.V3
    document: SpdxDocument

    def _create_document(self) -> SpdxDocument:
        project = self.project
        namespace = project.document_namespace or project.default_namespace()
        document = SpdxDocument(
            spdx_id=f"{namespace}#SPDXRef-DOCUMENT",
            name=project.package_name,
            namespace=namespace,
            creation_info=CreationInfo(created=self.created, comment=project.creator_comment),
            comment=project.document_comment,
            license_list_version=self.registry.list_version,
        )
        tool = Tool(spdx_id=document.uri("SPDXRef-Tool-" + TOOL_NAME), name=f"{TOOL_NAME}-{__version__}")
        document.add(tool)
        document.creation_info.created_using.append(tool.spdx_id)
        document.data_license = document.license_element(ListedLicense(DATA_LICENSE))
        return document

    def _create_license_manager(self) -> SpdxV3LicenseManager:
        return SpdxV3LicenseManager(
            self.document,
            self.registry,
            combination=self.options.license_combination,
            match_urls=self.options.match_licenses_on_cross_reference_urls,
        )

    def _create_collector(self) -> SpdxV3FileCollector:
        return SpdxV3FileCollector(
            self.document,
            checksum_algorithms=self.options.checksum_algorithms,
            continue_on_error=self.options.continue_on_error,
            hash_workers=self.options.hash_workers,
        )

    def _create_mapper(self) -> SpdxV3DependencyMapper:
        return SpdxV3DependencyMapper(
            self.document,
            self.license_manager,
            include_transitive=self.options.include_transitive_dependencies,
            use_artifact_id_as_name=self.options.use_artifact_id_as_name,
            create_external_refs=self.options.create_external_refs,
            generate_purls=self.options.generate_purls,
            license_overwrites=self.project.license_overwrites,
        )

    def _add_creators(self, creators: list[str]) -> None:
        info = self.document.creation_info
        # The supplier (or the project itself) is always a creating agent.
        supplier = self.project.supplier.strip() or self.project.package_name
        info.created_by.append(actor_agent(self.document, supplier))
        for creator in creators:
            kind, _, name = creator.partition(":")
            if kind == "Tool":
                tool = Tool(spdx_id=self.document.new_id(creator), name=name.strip())
                self.document.add(tool)
                info.created_using.append(tool.spdx_id)
            else:
                agent = actor_agent(self.document, creator)
                if agent not in info.created_by:
                    info.created_by.append(agent)

    def _create_project_package(self, checksums: dict[str, str]) -> Package:
        project = self.project
        coordinate = project.coordinate
        identifiers: list[ExternalIdentifier] = []
        refs: list[ExternalRef] = []
        purl = package_url(coordinate) if self.options.generate_purls else ""
        if purl:
            identifiers.append(ExternalIdentifier("packageUrl", purl))
        for declared in project.external_references:
            converted = to_v3_reference(declared)
            if isinstance(converted, ExternalIdentifier):
                identifiers.append(converted)
            else:
                refs.append(converted)

        verified: list[Any] = [Hash(algorithm, value) for algorithm, value in checksums.items()]
        verified.append(PackageVerificationCode(NULL_SHA1))
        package = Package(
            spdx_id=self.document.new_id(f"{coordinate.namespace}:{coordinate.name}:{coordinate.version}"),
            name=project.package_name,
            summary=project.short_description,
            description=project.description,
            verified_using=verified,
            external_identifiers=identifiers,
            external_refs=refs,
            version=coordinate.version,
            download_location=self._download_location(),
            home_page=project.home_page if is_download_location(project.home_page) else "",
            source_info=project.source_info,
            copyright_text=project.copyright_text or NOASSERTION,
            primary_purpose=Packaging.purpose_for(project.packaging),
            package_url=purl,
            supplied_by=actor_agent(self.document, project.supplier) if project.supplier.strip() else "",
            originated_by=(
                [actor_agent(self.document, project.originator)] if project.originator.strip() else []
            ),
        )
        self.document.add(package)
        for annotation in project.package_annotations:
            self._annotate(package.spdx_id, annotation)
        sbom = Sbom(spdx_id=self.document.new_id("sbom:" + package.spdx_id), root_elements=[package.spdx_id])
        self.document.add(sbom)
        self.document.root_elements.append(sbom.spdx_id)
        for annotation in project.document_annotations:
            self._annotate(self.document.spdx_id, annotation)
        return package

    def _annotate(self, subject: str, annotation: ProjectAnnotation) -> None:
        self.document.add(Annotation(
            spdx_id=self.document.new_id(f"annotation:{subject}:{annotation.date}:{annotation.comment}"),
            annotation_type=annotation.annotation_type,
            subject=subject,
            statement=annotation.comment,
            annotator=annotation.annotator,
            date=annotation.date,
        ))

    def _after_dependencies(self) -> None:
        sbom = self.document.sbom()
        if sbom is not None:
            sbom.elements = [i for i in self.document.elements if i != sbom.spdx_id]
