"""
Material Schemas
Pydantic models for material forms and stored material documents
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


FITTING_TYPES = ("Elastic Rail Clip", "Rail Pad", "Liner", "Sleeper")
INSTALLATION_STATUSES = ("Not Installed", "Installed")
VERIFICATION_STATUSES = ("Open", "Closed", "Repaired", "Pending Parts")
FAULT_STATUSES = ("Open", "InProgress", "Closed")
REQUEST_STATUSES = ("pending", "approved", "rejected")

# Never written by an edit once the material exists
PROTECTED_FIELDS = ("qrCode", "qrImageUrl", "qrHash", "materialId")

MATERIALS_COLLECTION = "materials"
FAULTS_COLLECTION = "faults"


def strip_protected(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``payload`` without the identifier and QR fields"""
    return {k: v for k, v in payload.items() if k not in PROTECTED_FIELDS}


class _FormModel(BaseModel):
    """Form input: camelCase field names, surrounding whitespace dropped"""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    def to_document(self, exclude_unset: bool = False) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=exclude_unset)


# ============================================================================
# VENDOR FORMS
# ============================================================================


class MaterialCreate(_FormModel):
    """Vendor registration of a manufactured material"""

    manufacturer_name: str = Field(..., min_length=1, alias="manufacturerName")
    fitting_type: str = Field(..., alias="fittingType")
    drawing_number: str = Field(..., min_length=1, alias="drawingNumber")
    material_spec: str = Field("", alias="materialSpec")
    weight_kg: str = Field("", alias="weightKg")
    board_gauge: str = Field("", alias="boardGauge")
    manufacturing_date: str = Field("", alias="manufacturingDate")
    expected_life_years: str = Field("", alias="expectedLifeYears")
    purchase_order_number: str = Field("", alias="purchaseOrderNumber")
    batch_number: str = Field("", alias="batchNumber")
    depot_code: str = Field(..., min_length=1, alias="depotCode")
    depot_entry_date: str = Field("", alias="depotEntryDate")
    udm_lot_number: str = Field("", alias="udmLotNumber")
    inspection_officer: str = Field("", alias="inspectionOfficer")
    dispatch_date: str = Field("", alias="dispatchDate")
    warranty_expiry: str = Field("", alias="warrantyExpiry")

    @field_validator("fitting_type")
    @classmethod
    def known_fitting_type(cls, value: str) -> str:
        if value not in FITTING_TYPES:
            raise ValueError(f"must be one of: {', '.join(FITTING_TYPES)}")
        return value


class MaterialUpdate(_FormModel):
    """Vendor edit of manufacturing details (identifier and QR untouched)"""

    manufacturer_name: Optional[str] = Field(None, min_length=1, alias="manufacturerName")
    fitting_type: Optional[str] = Field(None, alias="fittingType")
    drawing_number: Optional[str] = Field(None, min_length=1, alias="drawingNumber")
    material_spec: Optional[str] = Field(None, alias="materialSpec")
    weight_kg: Optional[str] = Field(None, alias="weightKg")
    board_gauge: Optional[str] = Field(None, alias="boardGauge")
    manufacturing_date: Optional[str] = Field(None, alias="manufacturingDate")
    expected_life_years: Optional[str] = Field(None, alias="expectedLifeYears")
    batch_number: Optional[str] = Field(None, alias="batchNumber")
    purchase_order_number: Optional[str] = Field(None, alias="purchaseOrderNumber")

    @field_validator("fitting_type")
    @classmethod
    def known_fitting_type(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in FITTING_TYPES:
            raise ValueError(f"must be one of: {', '.join(FITTING_TYPES)}")
        return value


# ============================================================================
# FIELD FORMS (track staff)
# ============================================================================


class InstallationUpdate(_FormModel):
    """Installation staff update from the field"""

    depot_entry_date: str = Field("", alias="depotEntryDate")
    tms_track_id: str = Field("", alias="tmsTrackId")
    gps_location: str = Field("", alias="gpsLocation")
    installation_status: str = Field("Not Installed", alias="installationStatus")

    @field_validator("installation_status")
    @classmethod
    def known_status(cls, value: str) -> str:
        if value not in INSTALLATION_STATUSES:
            raise ValueError(f"must be one of: {', '.join(INSTALLATION_STATUSES)}")
        return value


class VerificationSubmit(_FormModel):
    """Engineer verification sent to the depot officer"""

    last_maintenance_date: str = Field("", alias="lastMaintenanceDate")
    engineer_gps_location: str = Field("", alias="engineerGpsLocation")
    fault_status: str = Field("Open", alias="faultStatus")
    engineer_remarks: str = Field("", alias="engineerRemarks")
    engineer_root_cause: str = Field("", alias="engineerRootCause")
    engineer_preventive_action: str = Field("", alias="engineerPreventiveAction")

    @field_validator("fault_status")
    @classmethod
    def known_status(cls, value: str) -> str:
        if value not in VERIFICATION_STATUSES:
            raise ValueError(f"must be one of: {', '.join(VERIFICATION_STATUSES)}")
        return value


class FaultUpdate(_FormModel):
    """Engineer update of a fault report"""

    status: str = Field("Open")
    last_maintenance_date: str = Field("", alias="lastMaintenanceDate")
    engineer_remarks: str = Field("", alias="engineerRemarks")
    root_cause: str = Field("", alias="rootCause")
    preventive_measures: str = Field("", alias="preventiveMeasures")

    @field_validator("status")
    @classmethod
    def known_status(cls, value: str) -> str:
        if value not in FAULT_STATUSES:
            raise ValueError(f"must be one of: {', '.join(FAULT_STATUSES)}")
        return value


# ============================================================================
# STORED DOCUMENT
# ============================================================================


class MaterialRecord(BaseModel):
    """A material document as read from the store"""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    material_id: str = Field(..., alias="materialId")
    manufacturer_id: str = Field("", alias="manufacturerId")
    manufacturer_name: str = Field("", alias="manufacturerName")
    fitting_type: str = Field("", alias="fittingType")
    drawing_number: str = Field("", alias="drawingNumber")
    material_spec: str = Field("", alias="materialSpec")
    weight_kg: str = Field("", alias="weightKg")
    board_gauge: str = Field("", alias="boardGauge")
    manufacturing_date: str = Field("", alias="manufacturingDate")
    expected_life_years: str = Field("", alias="expectedLifeYears")
    purchase_order_number: str = Field("", alias="purchaseOrderNumber")
    batch_number: str = Field("", alias="batchNumber")
    depot_code: str = Field("", alias="depotCode")
    depot_entry_date: str = Field("", alias="depotEntryDate")
    udm_lot_number: str = Field("", alias="udmLotNumber")
    inspection_officer: str = Field("", alias="inspectionOfficer")
    tms_track_id: str = Field("", alias="tmsTrackId")
    gps_location: str = Field("", alias="gpsLocation")
    installation_status: str = Field("Not Installed", alias="installationStatus")
    installation_photo_url: str = Field("", alias="installationPhotoUrl")
    dispatch_date: str = Field("", alias="dispatchDate")
    warranty_expiry: str = Field("", alias="warrantyExpiry")
    failure_count: str = Field("0", alias="failureCount")
    last_maintenance_date: str = Field("", alias="lastMaintenanceDate")
    fault_status: str = Field("", alias="faultStatus")
    engineer_remarks: str = Field("", alias="engineerRemarks")
    engineer_root_cause: str = Field("", alias="engineerRootCause")
    engineer_preventive_action: str = Field("", alias="engineerPreventiveAction")
    engineer_gps_location: str = Field("", alias="engineerGpsLocation")
    engineer_photo_url: str = Field("", alias="engineerPhotoUrl")
    engineer_request: Optional[Dict[str, Any]] = Field(None, alias="engineerRequest")
    request_status: str = Field("", alias="requestStatus")
    officer_approval_date: str = Field("", alias="officerApprovalDate")
    qr_image_url: str = Field("", alias="qrImageUrl")
    created_at: Optional[Any] = Field(None, alias="createdAt")
    updated_at: Optional[Any] = Field(None, alias="updatedAt")

    @field_validator("*", mode="before")
    @classmethod
    def primitive_to_text(cls, value: Any, info) -> Any:
        # Older documents store numbers for some text fields (weightKg, failureCount)
        if info.field_name in ("engineer_request", "created_at", "updated_at"):
            return value
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @property
    def is_installed(self) -> bool:
        return self.installation_status.strip().lower() == "installed"

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
