import hashlib
from dataclasses import dataclass

import pytest
import yaml

from sealedsecret.exceptions import ManifestParseError
from sealedsecret.manifest import (
    KEY_HASH_ANNOTATION,
    annotate_manifest,
    hash_public_key,
    parse_manifest,
)

SEALED = b"""\
apiVersion: bitnami.com/v1alpha1
kind: SealedSecret
metadata:
  name: db-credentials
  namespace: prod
  creationTimestamp: null
spec:
  encryptedData:
    password: AgBy3i4OJSWK+PiTySYZZA==
    username: AgCtr8OJSWK+PiTySYZZA==
  template:
    type: kubernetes.io/basic-auth
    metadata:
      name: db-credentials
      namespace: prod
"""


@dataclass(frozen=True)
class Numbers:
    n: int
    e: int


@dataclass(frozen=True)
class Key:
    numbers: Numbers

    def public_numbers(self) -> Numbers:
        return self.numbers


class TestParseManifest:
    def test_parses_sealed_secret(self) -> None:
        manifest = parse_manifest(SEALED)

        assert manifest.api_version == "bitnami.com/v1alpha1"
        assert manifest.kind == "SealedSecret"
        assert manifest.name == "db-credentials"
        assert manifest.namespace == "prod"
        assert manifest.secret_type == "kubernetes.io/basic-auth"
        assert set(manifest.spec.encrypted_data) == {"password", "username"}
        assert manifest.key_hash is None

    def test_falls_back_to_object_metadata(self) -> None:
        content = b"kind: SealedSecret\nmetadata:\n  name: x\n  namespace: ns\n"

        manifest = parse_manifest(content)

        assert manifest.name == "x"
        assert manifest.namespace == "ns"
        assert manifest.spec.encrypted_data == {}

    def test_reads_key_hash_annotation(self) -> None:
        manifest = parse_manifest(annotate_manifest(SEALED, "abc123"))

        assert manifest.key_hash == "abc123"

    @pytest.mark.parametrize(
        "content",
        [b"kind: [unclosed", b"- a\n- b\n", b"just a string", b""],
    )
    def test_rejects_non_mapping(self, content: bytes) -> None:
        with pytest.raises(ManifestParseError):
            _ = parse_manifest(content)

    def test_rejects_invalid_fields(self) -> None:
        with pytest.raises(ManifestParseError, match="Invalid SealedSecret") as exc_info:
            _ = parse_manifest(b"kind: SealedSecret\nspec: not-a-mapping\n")

        assert exc_info.value.__cause__ is not None


class TestAnnotateManifest:
    def test_adds_annotation_and_keeps_document(self) -> None:
        annotated = yaml.safe_load(annotate_manifest(SEALED, "abc123"))
        original = yaml.safe_load(SEALED)

        assert annotated["metadata"]["annotations"] == {KEY_HASH_ANNOTATION: "abc123"}
        del annotated["metadata"]["annotations"]
        assert annotated == original

    def test_keeps_key_order(self) -> None:
        annotated = annotate_manifest(SEALED, "abc123").decode()

        assert annotated.index("apiVersion") < annotated.index("kind")
        assert annotated.index("kind") < annotated.index("metadata")
        assert annotated.index("metadata") < annotated.index("spec")

    def test_preserves_other_annotations(self) -> None:
        content = b"metadata:\n  annotations:\n    owner: team-a\n"

        annotated = yaml.safe_load(annotate_manifest(content, "abc"))

        assert annotated["metadata"]["annotations"] == {
            "owner": "team-a",
            KEY_HASH_ANNOTATION: "abc",
        }

    def test_replaces_previous_hash(self) -> None:
        once = annotate_manifest(SEALED, "old")

        twice = parse_manifest(annotate_manifest(once, "new"))

        assert twice.key_hash == "new"

    def test_creates_missing_metadata(self) -> None:
        annotated = yaml.safe_load(annotate_manifest(b"kind: SealedSecret\n", "h"))

        assert annotated["metadata"] == {"annotations": {KEY_HASH_ANNOTATION: "h"}}


class TestHashPublicKey:
    def test_hashes_decimal_modulus_and_exponent(self) -> None:
        key = Key(Numbers(n=3233, e=17))

        assert hash_public_key(key) == hashlib.sha1(b"323317").hexdigest()  # noqa: S324

    def test_different_keys_differ(self) -> None:
        first = hash_public_key(Key(Numbers(n=3233, e=65537)))
        second = hash_public_key(Key(Numbers(n=3233, e=17)))

        assert first != second
        assert len(first) == 40
