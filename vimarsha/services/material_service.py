"""
Material Service
Record resolution and every read/write of material and fault documents
"""

import io
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from pydantic import ValidationError as PydanticValidationError

from vimarsha.exceptions import (
    DataIntegrityError,
    DeviceAccessError,
    DocumentExistsError,
    DocumentMissingError,
    DuplicateMaterialError,
    MaterialNotFoundError,
    ValidationError,
)
from vimarsha.messages import MaterialMessages
from vimarsha.schemas.material import (
    FAULTS_COLLECTION,
    MATERIALS_COLLECTION,
    FaultUpdate,
    InstallationUpdate,
    MaterialCreate,
    MaterialRecord,
    MaterialUpdate,
    VerificationSubmit,
    strip_protected,
)
from vimarsha.utils.qr_codec import decode_payload, read_qr_text
from vimarsha.utils.threading_utils import ScanChannel, run_decoder

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")

EXPORT_COLUMNS = [
    ("Material ID", "material_id"),
    ("Fitting Type", "fitting_type"),
    ("Manufacturer", "manufacturer_name"),
    ("Drawing No.", "drawing_number"),
    ("Specification", "material_spec"),
    ("Weight (kg)", "weight_kg"),
    ("Gauge", "board_gauge"),
    ("Manufactured", "manufacturing_date"),
    ("Expected Life (yrs)", "expected_life_years"),
    ("Batch No.", "batch_number"),
    ("PO No.", "purchase_order_number"),
    ("Depot", "depot_code"),
    ("UDM Lot", "udm_lot_number"),
    ("Installation", "installation_status"),
    ("TMS Track ID", "tms_track_id"),
    ("Request", "request_status"),
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _alnum(value: Optional[str]) -> str:
    return _NON_ALNUM.sub("", value or "").upper()


def _validation_message(error: PydanticValidationError) -> str:
    """First pydantic error as one readable line"""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "")
    return f"{field}: {message}" if field else message


def _validate(model, data: Dict[str, Any]):
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(_validation_message(e)) from e


def is_document_key(key: Optional[str]) -> bool:
    """Whether ``key`` can name a document at all"""
    if not key or not key.strip():
        return False
    if "/" in key or key in (".", ".."):
        return False
    return not (key.startswith("__") and key.endswith("__"))


# ============================================================================
# IDENTIFIERS
# ============================================================================

def generate_material_id(depot_code: str, lot_number: str, drawing_number: str) -> str:
    """
    Mint the 7-character Material ID.

    Layout: 3 depot characters + last 2 of the lot + last 2 of the drawing
    number. Missing depot characters are padded with ``X``, missing digits
    with ``0``.

    Example:
        generate_material_id("kzj", "UDM-2024-17", "RDSO/T-3701") -> "KZJ1701"
    """
    depot = _alnum(depot_code)[:3].ljust(3, "X")
    lot = _alnum(lot_number)[-2:].rjust(2, "0")
    drawing = _alnum(drawing_number)[-2:].rjust(2, "0")
    return f"{depot}{lot}{drawing}"


def manufacturer_id7(uid: str) -> str:
    """Short manufacturer id stored on every material: first 7 of the uid"""
    return _alnum(uid)[:7].ljust(7, "X")


# ============================================================================
# RESOLUTION
# ============================================================================

def resolve(store, identifier: str) -> MaterialRecord:
    """
    Fetch the material record for an identifier.

    Args:
        store: Document store handle
        identifier: Decoded Material ID

    Returns:
        The validated record

    Raises:
        MaterialNotFoundError: no document for this identifier
        DataIntegrityError: the document has no ``materialId`` of its own
        TransientError: the store call itself failed
    """
    if not is_document_key(identifier):
        logger.info(f"Rejected lookup for invalid key {identifier!r}")
        raise MaterialNotFoundError(identifier)

    data = store.get(MATERIALS_COLLECTION, identifier)
    if data is None:
        raise MaterialNotFoundError(identifier)
    if not data.get("materialId"):
        logger.error(f"Material document {identifier} has no materialId field")
        raise DataIntegrityError()

    try:
        return MaterialRecord.model_validate(data)
    except PydanticValidationError as e:
        logger.error(f"Material document {identifier} is malformed: {e}")
        raise DataIntegrityError() from e


def records_from_documents(documents: Iterable) -> List[MaterialRecord]:
    records = []
    for document in documents:
        if not document.data.get("materialId"):
            logger.warning(f"Skipping material document {document.key} without materialId")
            continue
        try:
            records.append(MaterialRecord.model_validate(document.data))
        except PydanticValidationError:
            logger.warning(f"Skipping malformed material document {document.key}")
    return records


# ============================================================================
# VENDOR OPERATIONS
# ============================================================================

def create_material(store, form: Dict[str, Any], manufacturer_id: str) -> MaterialRecord:
    """
    Register a new material and mint its identifier.

    Raises:
        ValidationError: the form is incomplete
        DuplicateMaterialError: the minted identifier is already registered
    """
    data = _validate(MaterialCreate, form)
    material_id = generate_material_id(
        data.depot_code,
        data.udm_lot_number if _alnum(data.udm_lot_number) else data.batch_number,
        data.drawing_number,
    )

    now = _now()
    document = data.to_document()
    document.update({
        "materialId": material_id,
        "manufacturerId": manufacturer_id,
        "installationStatus": "Not Installed",
        "failureCount": 0,
        "createdAt": now,
        "updatedAt": now,
    })

    try:
        store.create(MATERIALS_COLLECTION, material_id, document)
    except DocumentExistsError as e:
        logger.warning(f"Material ID {material_id} already registered")
        raise DuplicateMaterialError() from e

    logger.info(f"Material {material_id} created by {manufacturer_id}")
    return MaterialRecord.model_validate(document)


def update_material(store, identifier: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply a vendor edit; the identifier and QR fields are never written.

    Returns:
        The fields that were persisted
    """
    resolve(store, identifier)

    data = _validate(MaterialUpdate, strip_protected(payload))
    changes = {k: v for k, v in data.to_document(exclude_unset=True).items() if v is not None}
    changes = strip_protected(changes)
    changes["updatedAt"] = _now()

    store.set(MATERIALS_COLLECTION, identifier, changes, merge=True)
    logger.info(f"Material {identifier} updated ({', '.join(sorted(changes))})")
    return changes


def list_materials(store, manufacturer_id: Optional[str] = None) -> List[MaterialRecord]:
    """All materials (or one manufacturer's), newest first"""
    filters = [("manufacturerId", "==", manufacturer_id)] if manufacturer_id else []
    records = records_from_documents(store.query(MATERIALS_COLLECTION, filters=filters))
    records.sort(key=lambda r: str(r.created_at or ""), reverse=True)
    return records


def filter_materials(records: Iterable[MaterialRecord], term: str = "",
                     status: str = "") -> List[MaterialRecord]:
    """
    Narrow a material list by search text and installation status.

    ``term`` matches the Material ID, fitting type, manufacturer, drawing
    number and depot code (case-insensitive). ``status`` is ``installed``,
    ``not installed`` or empty/``all``.
    """
    needle = (term or "").strip().lower()
    wanted = (status or "").strip().lower()

    result = []
    for record in records:
        if needle:
            haystack = " ".join([
                record.material_id,
                record.fitting_type,
                record.manufacturer_name,
                record.drawing_number,
                record.depot_code,
            ]).lower()
            if needle not in haystack:
                continue
        if wanted == "installed" and not record.is_installed:
            continue
        if wanted == "not installed" and record.is_installed:
            continue
        result.append(record)
    return result


def dashboard_stats(records: Iterable[MaterialRecord], now: Optional[datetime] = None) -> Dict[str, int]:
    """Totals per fitting family plus this month's and lifecycle counts"""
    now = now or datetime.now(timezone.utc)
    month_prefix = f"{now.year}-{now.month:02d}"

    stats = {
        "total": 0,
        "this_month": 0,
        "erc": 0,
        "pad": 0,
        "liner": 0,
        "sleeper": 0,
        "installed": 0,
        "pending_requests": 0,
    }
    for record in records:
        stats["total"] += 1
        if record.manufacturing_date.startswith(month_prefix):
            stats["this_month"] += 1

        fitting = record.fitting_type.lower()
        if "clip" in fitting or "elastic" in fitting:
            stats["erc"] += 1
        elif "pad" in fitting:
            stats["pad"] += 1
        elif "liner" in fitting:
            stats["liner"] += 1
        elif "sleep" in fitting:
            stats["sleeper"] += 1

        if record.is_installed:
            stats["installed"] += 1
        if record.request_status == "pending":
            stats["pending_requests"] += 1
    return stats


def export_workbook(records: Iterable[MaterialRecord]) -> bytes:
    """Spreadsheet (xlsx) of the given materials, one row each"""
    wb = Workbook()
    ws = wb.active
    ws.title = "Materials"

    ws.append([header for header, _ in EXPORT_COLUMNS])
    header_fill = PatternFill(start_color="4B0082", end_color="4B0082", fill_type="solid")
    for cell in ws[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = header_fill

    for record in records:
        ws.append([getattr(record, attr) for _, attr in EXPORT_COLUMNS])

    for column in ws.columns:
        width = max(len(str(cell.value or "")) for cell in column)
        ws.column_dimensions[column[0].column_letter].width = min(width + 2, 40)
    ws.freeze_panes = "A2"

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


# ============================================================================
# FIELD OPERATIONS (track staff / depot officer)
# ============================================================================

def update_installation(store, storage, identifier: str, fields: Dict[str, Any],
                        photo=None) -> Dict[str, Any]:
    """
    Save installation details; an optional site photo goes to object storage.

    Returns:
        The fields that were persisted
    """
    resolve(store, identifier)

    changes = _validate(InstallationUpdate, fields).to_document()
    if photo is not None:
        changes["installationPhotoUrl"] = storage.upload_image(
            photo, "installation", public_id=f"{identifier}_installation"
        )
    changes["updatedAt"] = _now()

    store.update(MATERIALS_COLLECTION, identifier, changes)
    logger.info(f"Installation details saved for {identifier}")
    return changes


def submit_verification(store, storage, identifier: str, fields: Dict[str, Any],
                        photo=None) -> Dict[str, Any]:
    """
    Record an engineer's verification and send it to the depot officer.

    The submitted values are kept twice: on the material itself and as the
    ``engineerRequest`` snapshot the officer decides on.
    """
    resolve(store, identifier)

    verification = _validate(VerificationSubmit, fields).to_document()
    if photo is not None:
        verification["engineerPhotoUrl"] = storage.upload_image(
            photo, "verification", public_id=f"{identifier}_engineer"
        )

    now = _now()
    changes = dict(verification)
    changes["requestStatus"] = "pending"
    changes["engineerRequest"] = {"submittedAt": now, **verification}
    changes["updatedAt"] = now

    store.update(MATERIALS_COLLECTION, identifier, changes)
    logger.info(f"Verification request submitted for {identifier}")
    return changes


def list_requests(store, status: str = "all") -> List[MaterialRecord]:
    """Materials carrying an engineer request, optionally of one status"""
    records = records_from_documents(store.query(MATERIALS_COLLECTION, order_by="materialId"))
    requests = [r for r in records if r.engineer_request]
    if status and status != "all":
        requests = [r for r in requests if r.request_status == status]
    return requests


def decide_request(store, identifier: str, approved: bool) -> str:
    """
    Approve or reject a pending engineer request.

    Returns:
        The new request status

    Raises:
        ValidationError: the request is not pending
    """
    record = resolve(store, identifier)
    if record.request_status != "pending":
        raise ValidationError(MaterialMessages.REQUEST_NOT_PENDING)

    now = _now()
    status = "approved" if approved else "rejected"
    changes = {"requestStatus": status, "updatedAt": now}
    if approved:
        changes["officerApprovalDate"] = now

    store.update(MATERIALS_COLLECTION, identifier, changes)
    logger.info(f"Request for {identifier} {status}")
    return status


# ============================================================================
# FAULT REPORTS
# ============================================================================

def list_faults(store) -> List[Dict[str, Any]]:
    """All fault reports, newest detection first"""
    faults = [{"id": doc.key, **doc.data} for doc in store.query(FAULTS_COLLECTION)]
    faults.sort(key=lambda f: str(f.get("detectedAt") or ""), reverse=True)
    return faults


def get_fault(store, fault_id: str) -> Dict[str, Any]:
    """
    Raises:
        DocumentMissingError: no such fault report
    """
    if not is_document_key(fault_id):
        raise DocumentMissingError(MaterialMessages.FAULT_NOT_FOUND)
    data = store.get(FAULTS_COLLECTION, fault_id)
    if data is None:
        raise DocumentMissingError(MaterialMessages.FAULT_NOT_FOUND)
    return {"id": fault_id, **data}


def update_fault(store, fault_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    get_fault(store, fault_id)
    changes = _validate(FaultUpdate, fields).to_document()
    changes["updatedAt"] = _now()
    store.update(FAULTS_COLLECTION, fault_id, changes)
    logger.info(f"Fault {fault_id} set to {changes['status']}")
    return changes


# ============================================================================
# SCANNING
# ============================================================================

def scan_photo(executor, data: bytes, timeout: float) -> str:
    """
    Decode a photo of a printed code on a worker thread.

    The request waits on a single-result channel for at most ``timeout``
    seconds; the channel is closed however the wait ends.

    Raises:
        DeviceAccessError: the decoder is unavailable or did not answer in time
        EmptyPayload: no code in the photo
    """
    with ScanChannel() as channel:
        future = executor.submit(run_decoder, channel, read_qr_text, data)
        if future is None:
            raise DeviceAccessError()
        text = channel.receive(timeout)
    return decode_payload(text)
