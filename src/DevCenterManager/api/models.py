"""Pydantic models for the entities exchanged with the certification API.

Only the fields the client reads, prints, or posts are modelled; unknown keys
are ignored so additions on the service side do not break decoding.  JSON uses
camelCase, the models use snake_case with aliases, and
:meth:`ApiModel.to_payload` produces the wire form for POST bodies.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum, IntEnum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

__all__ = [
    "ApiModel",
    "Link",
    "WorkflowStatus",
    "DownloadType",
    "DownloadItem",
    "Downloads",
    "Product",
    "NewProduct",
    "Submission",
    "NewSubmission",
    "Audience",
    "AdditionalInfoForMsApproval",
    "PublishingSpecifications",
    "HardwareId",
    "Chid",
    "Targeting",
    "RecipientSpecifications",
    "ShippingLabel",
    "NewShippingLabel",
    "DriverMetadata",
    "CreateType",
    "CreateInput",
    "Page",
]


class ApiModel(BaseModel):
    """Base model: camelCase aliases, unknown keys ignored, immutable."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict using wire names, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _coerce_id(value: Any) -> Any:
    # Identifiers arrive as strings or integers depending on the endpoint.
    if value is None or isinstance(value, str):
        return value
    return str(value)


EntityId = Annotated[Optional[str], BeforeValidator(_coerce_id)]


class Link(ApiModel):
    href: Optional[str] = None
    rel: Optional[str] = None
    method: Optional[str] = None


class WorkflowStatus(ApiModel):
    """Where an entity is in the service-side processing pipeline."""

    current_step: Optional[str] = Field(default=None, alias="currentStep")
    state: Optional[str] = None
    messages: List[str] = Field(default_factory=list)
    error_report: Optional[str] = Field(default=None, alias="errorReport")

    @field_validator("messages", mode="before")
    @classmethod
    def none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def step_state(self) -> tuple:
        return (self.current_step, self.state)


class DownloadType(str, Enum):
    INITIAL_PACKAGE = "initialPackage"
    SIGNED_PACKAGE = "signedPackage"
    CERTIFICATION_REPORT = "certificationReport"
    DRIVER_METADATA = "driverMetadata"
    DERIVED_PACKAGE = "derivedPackage"


class DownloadItem(ApiModel):
    type: str
    url: str

    def is_type(self, kind: DownloadType) -> bool:
        return self.type.lower() == kind.value.lower()


class Downloads(ApiModel):
    items: List[DownloadItem] = Field(default_factory=list)
    messages: List[str] = Field(default_factory=list)

    @field_validator("items", "messages", mode="before")
    @classmethod
    def none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    def find(self, kind: DownloadType) -> Optional[DownloadItem]:
        """First item of ``kind``, matched case-insensitively."""
        for item in self.items:
            if item.is_type(kind):
                return item
        return None


# ============================================================================
# Products & Submissions
# ============================================================================


class Product(ApiModel):
    id: EntityId = None
    shared_product_id: EntityId = Field(default=None, alias="sharedProductId")
    product_name: Optional[str] = Field(default=None, alias="productName")
    product_type: Optional[str] = Field(default=None, alias="productType")
    firmware_version: Optional[str] = Field(default=None, alias="firmwareVersion")
    device_type: Optional[str] = Field(default=None, alias="deviceType")
    is_test_sign: bool = Field(default=False, alias="isTestSign")
    is_flight_sign: bool = Field(default=False, alias="isFlightSign")
    requested_signatures: List[str] = Field(default_factory=list, alias="requestedSignatures")
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    updated_by: Optional[str] = Field(default=None, alias="updatedBy")
    created_date_time: Optional[datetime] = Field(default=None, alias="createdDateTime")
    updated_date_time: Optional[datetime] = Field(default=None, alias="updatedDateTime")
    announcement_date: Optional[datetime] = Field(default=None, alias="announcementDate")
    device_metadata_ids: List[str] = Field(default_factory=list, alias="deviceMetadataIds")
    marketing_names: List[str] = Field(default_factory=list, alias="marketingNames")
    test_harness: Optional[str] = Field(default=None, alias="testHarness")
    selected_product_types: Dict[str, str] = Field(
        default_factory=dict, alias="selectedProductTypes"
    )

    @field_validator(
        "requested_signatures", "device_metadata_ids", "marketing_names", mode="before"
    )
    @classmethod
    def none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("selected_product_types", mode="before")
    @classmethod
    def none_to_dict(cls, value: Any) -> Any:
        return {} if value is None else value


class NewProduct(ApiModel):
    product_name: str = Field(alias="productName")
    device_type: Optional[str] = Field(default=None, alias="deviceType")
    requested_signatures: List[str] = Field(default_factory=list, alias="requestedSignatures")
    announcement_date: Optional[datetime] = Field(default=None, alias="announcementDate")
    device_metadata_ids: Optional[List[str]] = Field(default=None, alias="deviceMetadataIds")
    firmware_version: Optional[str] = Field(default=None, alias="firmwareVersion")
    is_test_sign: bool = Field(default=False, alias="isTestSign")
    is_flight_sign: bool = Field(default=False, alias="isFlightSign")
    marketing_names: Optional[List[str]] = Field(default=None, alias="marketingNames")
    selected_product_types: Optional[Dict[str, str]] = Field(
        default=None, alias="selectedProductTypes"
    )
    test_harness: Optional[str] = Field(default=None, alias="testHarness")


class Submission(ApiModel):
    id: EntityId = None
    product_id: EntityId = Field(default=None, alias="productId")
    name: Optional[str] = None
    type: Optional[str] = None
    commit_status: Optional[str] = Field(default=None, alias="commitStatus")
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    created_date_time: Optional[str] = Field(default=None, alias="createdDateTime")
    links: List[Link] = Field(default_factory=list)
    workflow_status: Optional[WorkflowStatus] = Field(default=None, alias="workflowStatus")
    downloads: Optional[Downloads] = None

    @field_validator("links", mode="before")
    @classmethod
    def none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    def find_download(self, kind: DownloadType) -> Optional[DownloadItem]:
        return self.downloads.find(kind) if self.downloads is not None else None


class NewSubmission(ApiModel):
    name: str
    type: str = "initial"


class Audience(ApiModel):
    id: EntityId = None
    name: Optional[str] = None
    description: Optional[str] = None
    audience_name: Optional[str] = Field(default=None, alias="audienceName")
    links: List[Link] = Field(default_factory=list)


# ============================================================================
# Shipping Labels
# ============================================================================


class AdditionalInfoForMsApproval(ApiModel):
    microsoft_contact: Optional[str] = Field(default=None, alias="microsoftContact")
    validations_performed: Optional[str] = Field(default=None, alias="validationsPerformed")
    affected_oems: Optional[List[str]] = Field(default=None, alias="affectedOems")
    is_reboot_required: bool = Field(default=False, alias="isRebootRequired")
    is_co_engineered: bool = Field(default=False, alias="isCoEngineered")
    is_for_unreleased_hardware: bool = Field(default=False, alias="isForUnreleasedHardware")
    has_ui_software: bool = Field(default=False, alias="hasUiSoftware")
    business_justification: Optional[str] = Field(default=None, alias="businessJustification")


class PublishingSpecifications(ApiModel):
    go_live_date: Optional[datetime] = Field(default=None, alias="goLiveDate")
    visible_to_accounts: Optional[List[str]] = Field(default=None, alias="visibleToAccounts")
    is_auto_install_during_os_upgrade: bool = Field(
        default=False, alias="isAutoInstallDuringOSUpgrade"
    )
    is_auto_install_on_applicable_systems: bool = Field(
        default=False, alias="isAutoInstallOnApplicableSystems"
    )
    is_disclosure_restricted: bool = Field(default=False, alias="isDisclosureRestricted")
    publish_to_windows10s: bool = Field(default=False, alias="publishToWindows10s")
    additional_info_for_ms_approval: Optional[AdditionalInfoForMsApproval] = Field(
        default=None, alias="additionalInfoForMsApproval"
    )


class HardwareId(ApiModel):
    bundle_id: Optional[str] = Field(default=None, alias="bundleId")
    inf_id: Optional[str] = Field(default=None, alias="infId")
    operating_system_code: Optional[str] = Field(default=None, alias="operatingSystemCode")
    pnp_string: Optional[str] = Field(default=None, alias="pnpString")


class Chid(ApiModel):
    distribution_state: Optional[str] = Field(default=None, alias="distributionState")
    chid: Optional[str] = None


class Targeting(ApiModel):
    hardware_ids: List[HardwareId] = Field(default_factory=list, alias="hardwareIds")
    chids: Optional[List[Chid]] = None
    restricted_to_audiences: Optional[List[str]] = Field(
        default=None, alias="restrictedToAudiences"
    )


class RecipientSpecifications(ApiModel):
    enforce_chid_targeting: bool = Field(default=False, alias="enforceChidTargeting")
    receiver_publisher_id: Optional[str] = Field(default=None, alias="receiverPublisherId")


class ShippingLabel(ApiModel):
    id: EntityId = None
    product_id: EntityId = Field(default=None, alias="productId")
    submission_id: EntityId = Field(default=None, alias="submissionId")
    publishing_specifications: Optional[PublishingSpecifications] = Field(
        default=None, alias="publishingSpecifications"
    )
    targeting: Optional[Targeting] = None
    workflow_status: Optional[WorkflowStatus] = Field(default=None, alias="workflowStatus")
    links: List[Link] = Field(default_factory=list)
    name: Optional[str] = None
    destination: Optional[str] = None

    @field_validator("links", mode="before")
    @classmethod
    def none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value


class NewShippingLabel(ApiModel):
    publishing_specifications: PublishingSpecifications = Field(
        default_factory=PublishingSpecifications, alias="publishingSpecifications"
    )
    targeting: Targeting = Field(default_factory=Targeting)
    name: Optional[str] = None
    destination: Optional[str] = None
    recipient_specifications: Optional[RecipientSpecifications] = Field(
        default=None, alias="recipientSpecifications"
    )


# ============================================================================
# Driver metadata (blob artifact, PascalCase keys)
# ============================================================================


class _DriverMetadataInf(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    os_pnp_info_map: Dict[str, Dict[str, Any]] = Field(default_factory=dict, alias="OSPnPInfoMap")


class _DriverMetadataBundle(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    inf_info_map: Dict[str, _DriverMetadataInf] = Field(default_factory=dict, alias="InfInfoMap")


class DriverMetadata(BaseModel):
    """``driverMetadata`` artifact produced for a signed submission."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    bundle_info_map: Dict[str, _DriverMetadataBundle] = Field(
        default_factory=dict, alias="BundleInfoMap"
    )

    def hardware_ids(self) -> List[HardwareId]:
        """Flatten bundle → INF → OS → PnP entries into shipping-label targets."""
        ids: List[HardwareId] = []
        for bundle_id, bundle in self.bundle_info_map.items():
            for inf_id, inf in bundle.inf_info_map.items():
                for os_code, pnp_map in inf.os_pnp_info_map.items():
                    for pnp in pnp_map:
                        ids.append(
                            HardwareId(
                                bundle_id=bundle_id,
                                inf_id=inf_id,
                                operating_system_code=os_code,
                                pnp_string=pnp.lower(),
                            )
                        )
        return ids


# ============================================================================
# Create input file
# ============================================================================


class CreateType(IntEnum):
    SHIPPING_LABEL = 0
    PRODUCT = 1
    SUBMISSION = 2


class CreateInput(BaseModel):
    """Contents of the JSON file passed to ``create``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    create_type: CreateType = Field(alias="createType")
    create_product: Optional[NewProduct] = Field(default=None, alias="createProduct")
    create_submission: Optional[NewSubmission] = Field(default=None, alias="createSubmission")
    create_shipping_label: Optional[NewShippingLabel] = Field(
        default=None, alias="createShippingLabel"
    )

    @field_validator("create_type", mode="before")
    @classmethod
    def parse_type_name(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.isdigit():
            normalized = value.replace("_", "").lower()
            for member in CreateType:
                if member.name.replace("_", "").lower() == normalized:
                    return member
        return value


class Page(BaseModel):
    """``{value: [...], links: [...]}`` wrapper around list results."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    value: List[Any] = Field(default_factory=list)
    links: List[Link] = Field(default_factory=list)

    @field_validator("value", "links", mode="before")
    @classmethod
    def none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.api.models",
#   "purpose": "Pydantic models for products, submissions, shipping labels, audiences, and driver metadata",
#   "sections": [
#     {"id": "common", "name": "Links, workflow status, downloads", "anchor": "COM", "kind": "api"},
#     {"id": "products", "name": "Products & Submissions", "anchor": "PRD", "kind": "api"},
#     {"id": "labels", "name": "Shipping Labels", "anchor": "LBL", "kind": "api"},
#     {"id": "metadata", "name": "Driver metadata", "anchor": "MET", "kind": "api"},
#     {"id": "create", "name": "Create input file", "anchor": "CRT", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
