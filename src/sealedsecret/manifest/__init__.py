"""SealedSecret manifest parsing, annotation and key hashing."""

from sealedsecret.manifest._hash import PublicKey, PublicNumbers, hash_public_key
from sealedsecret.manifest._models import (
    KEY_HASH_ANNOTATION,
    ObjectMetadata,
    SealedSecretManifest,
    SealedSecretSpec,
    SecretTemplate,
    TemplateMetadata,
)
from sealedsecret.manifest._yaml import annotate_manifest, parse_manifest

__all__ = [
    "KEY_HASH_ANNOTATION",
    "ObjectMetadata",
    "PublicKey",
    "PublicNumbers",
    "SealedSecretManifest",
    "SealedSecretSpec",
    "SecretTemplate",
    "TemplateMetadata",
    "annotate_manifest",
    "hash_public_key",
    "parse_manifest",
]
