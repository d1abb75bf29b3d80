# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""
Pydantic models for the SPL entity graph.

Each model declares its own field rules (constraints and validators) so the
validation gate can check any candidate generically. ``natural_key_fields``
drive get-or-create deduplication and ``refresh_fields`` name the
display-only columns updated when an existing record is matched.
"""

import re
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from coreason_etl_fda_spl.config import SplConfig

_INVALID_FILE_NAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


class EntityKind(str, Enum):
    """Entity types produced by the graph builder; values double as table names."""

    PRODUCT = "product"
    PACKAGING_LEVEL = "packaging_level"
    PRODUCT_IDENTIFIER = "product_identifier"
    SPECIALIZED_KIND = "specialized_kind"
    EQUIVALENT_ENTITY = "equivalent_entity"
    MARKETING_CATEGORY = "marketing_category"
    MARKETING_STATUS = "marketing_status"
    POLICY = "policy"
    PRODUCT_EVENT = "product_event"
    LICENSE = "license"
    DISCIPLINARY_ACTION = "disciplinary_action"
    ATTACHED_DOCUMENT = "attached_document"
    GENERIC_MEDICINE = "generic_medicine"


class AttachmentOwnerKind(str, Enum):
    """Entity types that may own an attached document."""

    PRODUCT = "product"
    LICENSE = "license"
    DISCIPLINARY_ACTION = "disciplinary_action"


class AttachmentOwner(BaseModel):
    """Typed reference to the entity an attached document belongs to."""

    model_config = ConfigDict(frozen=True)

    kind: AttachmentOwnerKind
    entity_id: int = Field(ge=1)


class GraphEntity(BaseModel):
    """Common base: surrogate id plus dedup metadata."""

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[EntityKind]
    natural_key_fields: ClassVar[tuple[str, ...]] = ()
    refresh_fields: ClassVar[tuple[str, ...]] = ()

    id: Optional[int] = Field(default=None, description="Surrogate key assigned by the repository")

    def natural_key(self) -> tuple[Any, ...]:
        """Tuple of the values that identify this record within its kind."""
        return tuple(getattr(self, name) for name in self.natural_key_fields)

    def key_summary(self) -> str:
        """Human-readable ``field=value`` list of the natural key, for diagnostics."""
        return ", ".join(f"{name}={getattr(self, name)!r}" for name in self.natural_key_fields)


class Product(GraphEntity):
    """A manufactured product declared in a document section."""

    kind = EntityKind.PRODUCT
    natural_key_fields = (
        "document_id",
        "section_id",
        "sequence_number",
        "product_name",
        "product_suffix",
        "form_code",
        "form_code_system",
    )

    document_id: str = Field(min_length=1, description="Root OID of the source document's setId/id")
    section_id: str = Field(min_length=1, description="Root OID of the enclosing section id")
    sequence_number: Optional[int] = Field(
        default=None, ge=1, description="1-based position of the manufacturedProduct within its section"
    )
    product_name: Optional[str] = None
    product_suffix: Optional[str] = None
    form_code: Optional[str] = None
    form_code_system: Optional[str] = None
    form_display_name: Optional[str] = None
    description_text: Optional[str] = None


class PackagingLevel(GraphEntity):
    """One level of the nested container hierarchy."""

    kind = EntityKind.PACKAGING_LEVEL
    natural_key_fields = (
        "product_id",
        "parent_packaging_level_id",
        "product_instance_id",
        "sequence_number",
        "package_code",
        "package_form_code",
    )

    product_id: Optional[int] = Field(default=None, description="Set only on the outermost level")
    parent_packaging_level_id: Optional[int] = None
    product_instance_id: Optional[int] = None
    sequence_number: Optional[int] = Field(default=None, ge=1)
    quantity_numerator: Optional[Decimal] = Field(default=None, ge=0)
    quantity_numerator_unit: Optional[str] = None
    quantity_denominator: Optional[Decimal] = Field(default=None, gt=0)
    package_code: Optional[str] = None
    package_code_system: Optional[str] = None
    package_form_code: Optional[str] = None
    package_form_code_system: Optional[str] = None
    package_form_display_name: Optional[str] = None

    @model_validator(mode="after")
    def _single_owner(self) -> "PackagingLevel":
        nested = self.parent_packaging_level_id is not None or self.product_instance_id is not None
        if (self.product_id is not None) == nested:
            raise ValueError("packaging level must belong to exactly one of a product or a parent level/instance")
        return self


class ProductIdentifier(GraphEntity):
    """An item code (NDC, GTIN...) drawn from a product or its containers."""

    kind = EntityKind.PRODUCT_IDENTIFIER
    natural_key_fields = ("product_id", "source_index", "identifier_value", "identifier_system_oid")

    product_id: int
    identifier_value: str = Field(min_length=1)
    identifier_system_oid: str = Field(min_length=1)
    identifier_type: Optional[str] = Field(default=None, description="Inferred from the system OID")
    source_index: int = Field(ge=0, description="Ordinal of the code element within the product subtree")


class SpecializedKind(GraphEntity):
    """A product classification such as a cosmetic category."""

    kind = EntityKind.SPECIALIZED_KIND
    natural_key_fields = ("product_id", "kind_code", "kind_code_system")
    refresh_fields = ("kind_display_name",)

    product_id: int
    kind_code: str = Field(min_length=1)
    kind_code_system: str = Field(min_length=1)
    kind_display_name: Optional[str] = None


class EquivalentEntity(GraphEntity):
    """A declared equivalence to another product or defining material."""

    kind = EntityKind.EQUIVALENT_ENTITY
    natural_key_fields = (
        "product_id",
        "equivalence_code",
        "equivalence_code_system",
        "defining_material_kind_code",
        "defining_material_kind_system",
    )

    product_id: int
    equivalence_code: Optional[str] = None
    equivalence_code_system: Optional[str] = None
    defining_material_kind_code: Optional[str] = None
    defining_material_kind_system: Optional[str] = None

    @model_validator(mode="after")
    def _has_reference(self) -> "EquivalentEntity":
        if not self.equivalence_code and not self.defining_material_kind_code:
            raise ValueError("equivalent entity needs an equivalence code or a defining material kind code")
        return self


class MarketingCategory(GraphEntity):
    """Approval pathway (NDA, ANDA, monograph...) and its application number."""

    kind = EntityKind.MARKETING_CATEGORY
    natural_key_fields = (
        "product_id",
        "category_code",
        "category_code_system",
        "application_or_monograph_id_value",
        "application_or_monograph_id_oid",
    )
    refresh_fields = ("category_display_name",)

    product_id: int
    category_code: str = Field(min_length=1)
    category_code_system: str = Field(min_length=1)
    category_display_name: Optional[str] = None
    application_or_monograph_id_value: Optional[str] = None
    application_or_monograph_id_oid: Optional[str] = None
    approval_date: Optional[date] = None
    territory_code: Optional[str] = None


class MarketingStatus(GraphEntity):
    """Marketing act status owned by a product, a packaging level, or both."""

    kind = EntityKind.MARKETING_STATUS
    natural_key_fields = (
        "product_id",
        "packaging_level_id",
        "marketing_act_code",
        "marketing_act_code_system",
        "status_code",
        "effective_start_date",
        "effective_end_date",
    )
    base_key_fields: ClassVar[tuple[str, ...]] = (
        "product_id",
        "marketing_act_code",
        "marketing_act_code_system",
        "status_code",
        "effective_start_date",
        "effective_end_date",
    )

    product_id: Optional[int] = None
    packaging_level_id: Optional[int] = None
    marketing_act_code: str = Field(min_length=1)
    marketing_act_code_system: str
    status_code: str
    effective_start_date: Optional[date] = None
    effective_end_date: Optional[date] = None

    def base_key(self) -> tuple[Any, ...]:
        """Key ignoring the packaging level, used for upgrade-in-place matching."""
        return tuple(getattr(self, name) for name in self.base_key_fields)

    @model_validator(mode="after")
    def _check_act(self) -> "MarketingStatus":
        if self.marketing_act_code_system != SplConfig.FDA_SPL_CODE_SYSTEM:
            raise ValueError(f"marketing act code system must be {SplConfig.FDA_SPL_CODE_SYSTEM}")
        if self.status_code.lower() not in SplConfig.MARKETING_STATUS_CODES:
            raise ValueError(f"status code {self.status_code!r} is not a marketing status")
        if self.product_id is None and self.packaging_level_id is None:
            raise ValueError("marketing status needs a product or a packaging level")
        return self


class Policy(GraphEntity):
    """A DEA controlled-substance schedule."""

    kind = EntityKind.POLICY
    natural_key_fields = ("product_id", "policy_class_code", "policy_code", "policy_code_system")
    refresh_fields = ("policy_display_name",)

    product_id: int
    policy_class_code: str
    policy_code: str = Field(min_length=1)
    policy_code_system: str
    policy_display_name: str = Field(min_length=1)

    @model_validator(mode="after")
    def _check_schedule(self) -> "Policy":
        if self.policy_class_code != SplConfig.POLICY_CLASS_CODE:
            raise ValueError(f"policy class code must be {SplConfig.POLICY_CLASS_CODE}")
        if self.policy_code_system != SplConfig.FDA_SPL_CODE_SYSTEM:
            raise ValueError(f"policy code system must be {SplConfig.FDA_SPL_CODE_SYSTEM}")
        return self


class ProductEvent(GraphEntity):
    """Lot distribution event (units distributed or returned) on a packaging level."""

    kind = EntityKind.PRODUCT_EVENT
    natural_key_fields = ("packaging_level_id", "event_code")

    packaging_level_id: int
    event_code: str
    event_code_system: Optional[str] = None
    event_display_name: Optional[str] = None
    quantity_value: Optional[int] = Field(default=None, ge=0)
    quantity_unit: Optional[str] = None
    effective_time_low: Optional[date] = None

    @model_validator(mode="after")
    def _check_event(self) -> "ProductEvent":
        if self.event_code not in SplConfig.EVENT_DISPLAY_NAMES:
            raise ValueError(f"event code {self.event_code!r} is not a product event")
        if self.quantity_unit is not None and self.quantity_unit not in SplConfig.EVENT_QUANTITY_UNITS:
            raise ValueError(f"quantity unit {self.quantity_unit!r} must be '1' or empty")
        if self.event_code == SplConfig.EVENT_DISTRIBUTED and self.effective_time_low is None:
            raise ValueError("distributed event requires an effective date")
        if self.event_code == SplConfig.EVENT_RETURNED and self.effective_time_low is not None:
            raise ValueError("returned event must not carry an effective date")
        return self


class License(GraphEntity):
    """A licensing approval (e.g. wholesale distributor state license)."""

    kind = EntityKind.LICENSE
    natural_key_fields = ("license_number", "license_root_oid")
    refresh_fields = (
        "license_type_code_system",
        "license_type_display_name",
        "status_code",
        "expiration_date",
        "territory_code",
        "territory_code_system",
    )

    license_number: str = Field(min_length=1)
    license_root_oid: str = Field(min_length=1)
    license_type_code: str = SplConfig.LICENSE_APPROVAL_CODE
    license_type_code_system: Optional[str] = None
    license_type_display_name: Optional[str] = None
    status_code: Optional[str] = None
    expiration_date: Optional[date] = None
    territory_code: Optional[str] = None
    territory_code_system: Optional[str] = None

    @model_validator(mode="after")
    def _check_type(self) -> "License":
        if self.license_type_code != SplConfig.LICENSE_APPROVAL_CODE:
            raise ValueError(f"license type code must be {SplConfig.LICENSE_APPROVAL_CODE}")
        return self


class DisciplinaryAction(GraphEntity):
    """An action taken against a license."""

    kind = EntityKind.DISCIPLINARY_ACTION
    natural_key_fields = ("license_id", "action_code", "action_code_system", "effective_time")
    refresh_fields = ("action_display_name", "action_text")

    license_id: int
    action_code: str
    action_code_system: str
    action_display_name: Optional[str] = None
    effective_time: Optional[date] = None
    action_text: Optional[str] = None

    @model_validator(mode="after")
    def _check_action(self) -> "DisciplinaryAction":
        expected_display = SplConfig.ACTION_DISPLAY_NAMES.get(self.action_code)
        if expected_display is None:
            raise ValueError(f"action code {self.action_code!r} is not a disciplinary action")
        if self.action_code_system != SplConfig.FDA_SPL_CODE_SYSTEM:
            raise ValueError(f"action code system must be {SplConfig.FDA_SPL_CODE_SYSTEM}")
        if self.action_display_name and self.action_display_name.strip().lower() != expected_display:
            raise ValueError(f"display name {self.action_display_name!r} does not match code {self.action_code}")
        if self.action_code == SplConfig.ACTION_OTHER:
            if not self.action_text or not self.action_text.strip():
                raise ValueError("action 'other' requires descriptive text")
            if "<" in self.action_text or ">" in self.action_text:
                raise ValueError("action text must be plain text")
        elif self.action_text:
            raise ValueError("action text is only allowed for action 'other'")
        return self


class AttachedDocument(GraphEntity):
    """A file (usually a PDF) attached to a product, license or disciplinary action."""

    kind = EntityKind.ATTACHED_DOCUMENT
    natural_key_fields = ("owner", "file_name")
    refresh_fields = ("media_type",)

    owner: AttachmentOwner
    media_type: str = Field(min_length=1)
    file_name: str = Field(min_length=1, max_length=SplConfig.MAX_FILE_NAME_LENGTH)
    document_id_root: Optional[str] = None
    title: Optional[str] = None

    @model_validator(mode="after")
    def _check_file(self) -> "AttachedDocument":
        if _INVALID_FILE_NAME_CHARS.search(self.file_name):
            raise ValueError(f"file name {self.file_name!r} contains invalid characters")
        stem, dot, extension = self.file_name.rpartition(".")
        if not dot or not stem or not extension:
            raise ValueError(f"file name {self.file_name!r} has no extension")
        if self.media_type.lower() == SplConfig.PDF_MEDIA_TYPE and extension.lower() != "pdf":
            raise ValueError("application/pdf attachments must have a .pdf file name")
        return self


class GenericMedicine(GraphEntity):
    """Non-proprietary name of a product, with its phonetic spelling if given."""

    kind = EntityKind.GENERIC_MEDICINE
    natural_key_fields = ("product_id", "generic_name", "phonetic_name")

    product_id: int
    generic_name: Optional[str] = None
    phonetic_name: Optional[str] = None

    @model_validator(mode="after")
    def _has_name(self) -> "GenericMedicine":
        if not self.generic_name and not self.phonetic_name:
            raise ValueError("generic medicine needs a name")
        return self


ENTITY_MODELS: dict[EntityKind, type[GraphEntity]] = {
    model.kind: model
    for model in (
        Product,
        PackagingLevel,
        ProductIdentifier,
        SpecializedKind,
        EquivalentEntity,
        MarketingCategory,
        MarketingStatus,
        Policy,
        ProductEvent,
        License,
        DisciplinaryAction,
        AttachedDocument,
        GenericMedicine,
    )
}
