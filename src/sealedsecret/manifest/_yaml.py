# pyright: reportAny=false
"""Reading and annotating published SealedSecret YAML."""

from typing import Any

import yaml
from pydantic import ValidationError

from sealedsecret.exceptions import ManifestParseError
from sealedsecret.manifest._models import KEY_HASH_ANNOTATION, SealedSecretManifest


def _load_document(content: bytes) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Parse YAML content that must hold a single mapping.

    Raises:
        ManifestParseError: If the content is not YAML or not a mapping.
    """
    try:
        document = yaml.safe_load(content)
    except yaml.YAMLError as e:
        msg = f"Failed to parse manifest YAML: {e}"
        raise ManifestParseError(msg, cause=e) from e
    if not isinstance(document, dict):
        msg = f"Manifest must be a YAML mapping, got {type(document).__name__}"
        raise ManifestParseError(msg)
    return document


def parse_manifest(content: bytes) -> SealedSecretManifest:
    """Parse published content into a SealedSecretManifest.

    Args:
        content: The YAML document.

    Returns:
        The parsed manifest.

    Raises:
        ManifestParseError: If the content is not a valid manifest.
    """
    document = _load_document(content)
    try:
        return SealedSecretManifest.model_validate(document)
    except ValidationError as e:
        msg = f"Invalid SealedSecret manifest: {e.error_count()} error(s)"
        raise ManifestParseError(msg, cause=e) from e


def annotate_manifest(content: bytes, key_hash: str) -> bytes:
    """Record the public key hash in a manifest's metadata annotations.

    Existing annotations are preserved; a previous hash is replaced.

    Args:
        content: The YAML document produced by the sealer.
        key_hash: Hash of the public key the payload was sealed with.

    Returns:
        The re-serialized YAML document.

    Raises:
        ManifestParseError: If the content is not a YAML mapping.
    """
    document = _load_document(content)
    metadata = document.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
        document["metadata"] = metadata
    annotations = metadata.get("annotations")
    if not isinstance(annotations, dict):
        annotations = {}
        metadata["annotations"] = annotations
    annotations[KEY_HASH_ANNOTATION] = key_hash
    return yaml.safe_dump(document, sort_keys=False).encode()
