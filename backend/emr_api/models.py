"""SQLModel data models.

This module defines the EMR entity tables exposed by the CRUD API. Every
entity carries a UUID primary key and the owning `tenant_id`; entities
whose writes are audited also carry some or all of the
`created_by`/`created_on`/`updated_by`/`updated_on` columns, which are
stamped by the controllers rather than computed here.

Foreign keys are plain UUID columns; no relationships are declared.
"""

import uuid
from datetime import datetime
from typing import Dict, Optional, Type

from sqlmodel import SQLModel, Field


class TenantEntity(SQLModel):
    """Columns shared by every entity table."""
    id: Optional[uuid.UUID] = Field(default=None, primary_key=True)
    tenant_id: Optional[uuid.UUID] = Field(default=None, index=True)


class AuditedEntity(TenantEntity):
    """Entity whose creation and updates are stamped with user and time."""
    created_by: Optional[uuid.UUID] = None
    created_on: Optional[datetime] = None
    updated_by: Optional[uuid.UUID] = None
    updated_on: Optional[datetime] = None


class CreateAuditedEntity(TenantEntity):
    """Entity that only records who created it and when."""
    created_by: Optional[uuid.UUID] = None
    created_on: Optional[datetime] = None


# --- billing -----------------------------------------------------------------

class AccountSettlement(TenantEntity, table=True):
    appointment_id: Optional[uuid.UUID] = Field(default=None, index=True)
    invoice_id: Optional[uuid.UUID] = Field(default=None, index=True)
    currency: Optional[uuid.UUID] = None
    amount: Optional[float] = None
    settlement_date: Optional[datetime] = None
    reference: Optional[str] = None


class Currency(TenantEntity, table=True):
    code: Optional[str] = Field(default=None, index=True)
    name: Optional[str] = None
    symbol: Optional[str] = None
    exchange_rate: Optional[float] = None


class GstSettings(AuditedEntity, table=True):
    name: Optional[str] = None
    cgst: Optional[float] = None
    sgst: Optional[float] = None
    igst: Optional[float] = None
    is_active: Optional[bool] = None


class Invoice(TenantEntity, table=True):
    """Patient invoice header; lines live in `InvoiceLine`."""
    visit_id: Optional[uuid.UUID] = Field(default=None, index=True)
    patient_id: Optional[uuid.UUID] = Field(default=None, index=True)
    doctor_id: Optional[uuid.UUID] = None
    location_id: Optional[uuid.UUID] = None
    invoice_number: Optional[str] = Field(default=None, index=True)
    invoice_date: Optional[datetime] = None
    total_amount: Optional[float] = None
    status: Optional[str] = None


class InvoiceLine(TenantEntity, table=True):
    invoice_id: Optional[uuid.UUID] = Field(default=None, index=True)
    product_id: Optional[uuid.UUID] = None
    product_batch_id: Optional[uuid.UUID] = None
    product_uom_id: Optional[uuid.UUID] = None
    gst_settings_id: Optional[uuid.UUID] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    amount: Optional[float] = None


class PaymentGateway(TenantEntity, table=True):
    """Gateway transaction record; updates only stamp `updated_on`."""
    appointment_id: Optional[uuid.UUID] = None
    doctor_id: Optional[uuid.UUID] = None
    patient_id: Optional[uuid.UUID] = Field(default=None, index=True)
    invoice_id: Optional[uuid.UUID] = None
    amount: Optional[float] = None
    transaction_id: Optional[str] = None
    status: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None


class PaymentMode(TenantEntity, table=True):
    name: Optional[str] = None
    code: Optional[str] = None
    is_active: Optional[bool] = None


class PriceListVersion(CreateAuditedEntity, table=True):
    price_list_id: Optional[uuid.UUID] = Field(default=None, index=True)
    version_name: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None


# --- appointments & visits ---------------------------------------------------

class AppointmentReminderLog(TenantEntity, table=True):
    appointment_id: Optional[uuid.UUID] = Field(default=None, index=True)
    channel: Optional[str] = None
    sent_on: Optional[datetime] = None
    status: Optional[str] = None
    message: Optional[str] = None


class AppointmentService(TenantEntity, table=True):
    appointment_id: Optional[uuid.UUID] = Field(default=None, index=True)
    service: Optional[uuid.UUID] = None
    quantity: Optional[int] = None
    price: Optional[float] = None


class TokenManagement(AuditedEntity, table=True):
    """Daily consultation token issued to a patient for a doctor."""
    doctor_id: Optional[uuid.UUID] = None
    patient_id: Optional[uuid.UUID] = None
    token_date: Optional[datetime] = None
    token_number: Optional[int] = None
    status: Optional[str] = None


class Visit(TenantEntity, table=True):
    patient_id: Optional[uuid.UUID] = Field(default=None, index=True)
    location_id: Optional[uuid.UUID] = None
    visit_mode: Optional[uuid.UUID] = None
    doctor: Optional[uuid.UUID] = None
    visit_date: Optional[datetime] = None
    visit_type: Optional[str] = None
    status: Optional[str] = None


class VisitChiefComplaintParameter(TenantEntity, table=True):
    visit_chief_complaint_id: Optional[uuid.UUID] = Field(default=None, index=True)
    clinical_parameter_id: Optional[uuid.UUID] = None
    value: Optional[str] = None


class VisitDiagnosis(TenantEntity, table=True):
    visit_id: Optional[uuid.UUID] = Field(default=None, index=True)
    diagnosis_code: Optional[str] = None
    description: Optional[str] = None


class VisitGuideline(TenantEntity, table=True):
    visit_id: Optional[uuid.UUID] = Field(default=None, index=True)
    guideline: Optional[str] = None


class VisitInvestigation(TenantEntity, table=True):
    doctor_investigation_id: Optional[uuid.UUID] = None
    patient_id: Optional[uuid.UUID] = Field(default=None, index=True)
    invoice_line_id: Optional[uuid.UUID] = None
    result: Optional[str] = None
    status: Optional[str] = None


class VisitMode(TenantEntity, table=True):
    name: Optional[str] = None
    description: Optional[str] = None


# --- clinical ----------------------------------------------------------------

class ChiefComplaint(TenantEntity, table=True):
    name: Optional[str] = Field(default=None, index=True)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class ClinicalParameterValue(TenantEntity, table=True):
    value: Optional[str] = None
    description: Optional[str] = None
    sequence: Optional[int] = None


class DoctorInvestigation(TenantEntity, table=True):
    investigation_id: Optional[uuid.UUID] = None
    doctor_id: Optional[uuid.UUID] = Field(default=None, index=True)
    notes: Optional[str] = None


class Generic(TenantEntity, table=True):
    """Generic drug name."""
    item_name: Optional[str] = None


class Qualification(TenantEntity, table=True):
    name: Optional[str] = None
    description: Optional[str] = None


class RouteInfo(AuditedEntity, table=True):
    """Medication administration route (oral, IV, ...)."""
    name: Optional[str] = None
    code: Optional[str] = None


class Specialisation(TenantEntity, table=True):
    name: Optional[str] = None
    description: Optional[str] = None


# --- patients ----------------------------------------------------------------

class PatientCategory(AuditedEntity, table=True):
    patient_id: Optional[uuid.UUID] = Field(default=None, index=True)
    category: Optional[str] = None


class PatientEnrollmentLink(CreateAuditedEntity, table=True):
    email: Optional[str] = None
    token: Optional[str] = Field(default=None, index=True)
    expires_on: Optional[datetime] = None
    is_used: Optional[bool] = None


class PatientHospitalisationHistory(TenantEntity, table=True):
    patient_id: Optional[uuid.UUID] = Field(default=None, index=True)
    hospital_name: Optional[str] = None
    admission_date: Optional[datetime] = None
    discharge_date: Optional[datetime] = None
    reason: Optional[str] = None


class PatientLifeStyle(TenantEntity, table=True):
    patient_id: Optional[uuid.UUID] = Field(default=None, index=True)
    smoking: Optional[str] = None
    alcohol: Optional[str] = None
    exercise: Optional[str] = None
    diet: Optional[str] = None


class PatientPayor(AuditedEntity, table=True):
    patient_id: Optional[uuid.UUID] = Field(default=None, index=True)
    payor_id: Optional[uuid.UUID] = None
    policy_number: Optional[str] = None
    valid_till: Optional[datetime] = None


class PatientPharmacyQueue(AuditedEntity, table=True):
    patient_id: Optional[uuid.UUID] = Field(default=None, index=True)
    visit_id: Optional[uuid.UUID] = None
    dispense_id: Optional[uuid.UUID] = None
    queue_number: Optional[int] = None
    status: Optional[str] = None


class PatientPregnancy(AuditedEntity, table=True):
    patient_id: Optional[uuid.UUID] = Field(default=None, index=True)
    lmp_date: Optional[datetime] = None
    edd_date: Optional[datetime] = None
    gravida: Optional[int] = None
    para: Optional[int] = None


class Notification(TenantEntity, table=True):
    recipient_id: Optional[uuid.UUID] = Field(default=None, index=True)
    title: Optional[str] = None
    message: Optional[str] = None
    is_read: Optional[bool] = None
    sent_on: Optional[datetime] = None


class Language(TenantEntity, table=True):
    code: Optional[str] = None
    name: Optional[str] = None


# --- inventory ---------------------------------------------------------------

class GoodsReceiptItem(TenantEntity, table=True):
    goods_receipt_id: Optional[uuid.UUID] = Field(default=None, index=True)
    product_id: Optional[uuid.UUID] = None
    product_batch_id: Optional[uuid.UUID] = None
    purchase_order_id: Optional[uuid.UUID] = None
    purchase_order_line_id: Optional[uuid.UUID] = None
    received_quantity: Optional[float] = None
    unit_price: Optional[float] = None


class GoodsReturn(TenantEntity, table=True):
    goods_receipt_id: Optional[uuid.UUID] = Field(default=None, index=True)
    location_id: Optional[uuid.UUID] = None
    sub_reason: Optional[uuid.UUID] = None
    return_date: Optional[datetime] = None
    status: Optional[str] = None
    remarks: Optional[str] = None


class GoodsReturnFile(CreateAuditedEntity, table=True):
    goods_return_id: Optional[uuid.UUID] = Field(default=None, index=True)
    file_name: Optional[str] = None
    file_url: Optional[str] = None


class GoodsReturnItem(TenantEntity, table=True):
    goods_return_id: Optional[uuid.UUID] = Field(default=None, index=True)
    product_id: Optional[uuid.UUID] = None
    product_batch_id: Optional[uuid.UUID] = None
    goods_receipt_item_id: Optional[uuid.UUID] = None
    sub_reason: Optional[uuid.UUID] = None
    return_quantity: Optional[float] = None


class ProductBatch(TenantEntity, table=True):
    product_id: Optional[uuid.UUID] = Field(default=None, index=True)
    product_uom_id: Optional[uuid.UUID] = None
    location: Optional[uuid.UUID] = None
    invoice_line_id: Optional[uuid.UUID] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[datetime] = None
    quantity: Optional[float] = None


class ProductCategory(AuditedEntity, table=True):
    name: Optional[str] = None
    code: Optional[str] = None
    description: Optional[str] = None


class RequisitionLine(AuditedEntity, table=True):
    requisition_id: Optional[uuid.UUID] = Field(default=None, index=True)
    product_id: Optional[uuid.UUID] = None
    product_uom_id: Optional[uuid.UUID] = None
    purchase_order_id: Optional[uuid.UUID] = None
    purchase_order_line_id: Optional[uuid.UUID] = None
    quantity: Optional[float] = None


class StockAdjustment(TenantEntity, table=True):
    location_id: Optional[uuid.UUID] = None
    adjustment_date: Optional[datetime] = None
    reason: Optional[str] = None
    status: Optional[str] = None


class StockAdjustmentFile(CreateAuditedEntity, table=True):
    stock_adjustment_id: Optional[uuid.UUID] = Field(default=None, index=True)
    file_name: Optional[str] = None
    file_url: Optional[str] = None


class StockAdjustmentItem(TenantEntity, table=True):
    stock_adjustment_id: Optional[uuid.UUID] = Field(default=None, index=True)
    product_id: Optional[uuid.UUID] = None
    product_batch_id: Optional[uuid.UUID] = None
    product_uom_id: Optional[uuid.UUID] = None
    quantity: Optional[float] = None


class Uom(TenantEntity, table=True):
    """Unit of measure."""
    name: Optional[str] = None
    code: Optional[str] = None


ENTITY_MODELS: Dict[str, Type[TenantEntity]] = {
    m.__name__: m
    for m in (
        AccountSettlement,
        AppointmentReminderLog,
        AppointmentService,
        ChiefComplaint,
        ClinicalParameterValue,
        Currency,
        DoctorInvestigation,
        Generic,
        GoodsReceiptItem,
        GoodsReturn,
        GoodsReturnFile,
        GoodsReturnItem,
        GstSettings,
        Invoice,
        InvoiceLine,
        Language,
        Notification,
        PatientCategory,
        PatientEnrollmentLink,
        PatientHospitalisationHistory,
        PatientLifeStyle,
        PatientPayor,
        PatientPharmacyQueue,
        PatientPregnancy,
        PaymentGateway,
        PaymentMode,
        PriceListVersion,
        ProductBatch,
        ProductCategory,
        Qualification,
        RequisitionLine,
        RouteInfo,
        Specialisation,
        StockAdjustment,
        StockAdjustmentFile,
        StockAdjustmentItem,
        TokenManagement,
        Uom,
        Visit,
        VisitChiefComplaintParameter,
        VisitDiagnosis,
        VisitGuideline,
        VisitInvestigation,
        VisitMode,
    )
}
