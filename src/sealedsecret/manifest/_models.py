"""SealedSecret manifest model.

Only the fields this package reads are modelled; everything else in the
document is accepted and ignored.
"""

from typing import ClassVar, Final

from pydantic import BaseModel, ConfigDict, Field

KEY_HASH_ANNOTATION: Final = "sealedsecret.io/public-key-hash"


class TemplateMetadata(BaseModel):
    """Metadata of the Secret the controller will create."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    namespace: str = ""


class SecretTemplate(BaseModel):
    """Template of the Secret the controller will create."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    type: str = ""
    metadata: TemplateMetadata = TemplateMetadata()


class SealedSecretSpec(BaseModel):
    """The spec section of a SealedSecret.

    Attributes:
        encrypted_data: Encrypted values keyed by secret key.
        template: Template for the decrypted Secret.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="ignore", populate_by_name=True
    )

    encrypted_data: dict[str, str] = Field(default_factory=dict, alias="encryptedData")
    template: SecretTemplate = SecretTemplate()


class ObjectMetadata(BaseModel):
    """Metadata of the SealedSecret object itself."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    namespace: str = ""
    annotations: dict[str, str] = Field(default_factory=dict)


class SealedSecretManifest(BaseModel):
    """A published SealedSecret document.

    Attributes:
        api_version: The apiVersion field.
        kind: The kind field, normally "SealedSecret".
        metadata: Object metadata, including the key hash annotation.
        spec: Encrypted payload and Secret template.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="ignore", populate_by_name=True
    )

    api_version: str = Field(default="", alias="apiVersion")
    kind: str = ""
    metadata: ObjectMetadata = ObjectMetadata()
    spec: SealedSecretSpec = SealedSecretSpec()

    @property
    def name(self) -> str:
        """Name of the Secret the controller will create."""
        return self.spec.template.metadata.name or self.metadata.name

    @property
    def namespace(self) -> str:
        """Namespace of the Secret the controller will create."""
        return self.spec.template.metadata.namespace or self.metadata.namespace

    @property
    def secret_type(self) -> str:
        """Type of the Secret the controller will create."""
        return self.spec.template.type

    @property
    def key_hash(self) -> str | None:
        """Hash of the public key the payload was sealed with, if recorded."""
        return self.metadata.annotations.get(KEY_HASH_ANNOTATION)
