"""Core SBOM assembly engine: collectors, license resolution, dependency mapping, documents."""
