"""
Deal document generation, signing and RTO transfer tracking.

Document content is stored as canonical JSON (sorted keys, no whitespace,
Decimals and dates as strings) and its SHA-256 recorded at generation, so
``verify_document`` can recompute the hash from what is in the database.
"""
import hashlib
import json
import logging
import time

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction as db_transaction
from django.utils import timezone

from backend.core.utils import create_system_log, get_client_ip
from backend.core.validators import sanitize_input, validate_url
from backend.deals import services as deal_services
from backend.deals.models import Transaction
from backend.deals.state import DealError
from backend.notifications.services import notify_dealer
from .models import DigitalDocument, RTOApplication

logger = logging.getLogger(__name__)

DOCUMENT_STATUSES = ('accepted', 'in_escrow', 'in_transit', 'completed')
RTO_STATUSES = ('in_escrow', 'in_transit', 'completed')
RTO_FLOW = ['submitted', 'in_process', 'dispatch', 'completed']


def canonical_json(data):
    return json.dumps(data, sort_keys=True, separators=(',', ':'), cls=DjangoJSONEncoder, ensure_ascii=False)


def compute_hash(data):
    return hashlib.sha256(canonical_json(data).encode('utf-8')).hexdigest()


def _party_details(dealer):
    return {
        'businessName': dealer.business_name,
        'address': dealer.address,
        'city': dealer.city,
        'state': dealer.state,
        'pincode': dealer.pincode,
        'gstin': dealer.gstin,
        'pan': dealer.pan,
        'phone': dealer.phone,
        'email': dealer.email,
    }


def build_document_data(deal, document_type, document_number):
    vehicle = deal.vehicle
    data = {
        'documentType': document_type,
        'documentNumber': document_number,
        'generatedAt': timezone.now(),
        'vehicle': {
            'make': vehicle.make,
            'model': vehicle.model,
            'variant': vehicle.variant,
            'year': vehicle.year,
            'vin': vehicle.vin,
            'registrationNumber': vehicle.registration_number,
            'kilometers': vehicle.kilometers,
            'fuelType': vehicle.fuel_type,
        },
        'transaction': {
            'id': deal.id,
            'reference': deal.reference,
            'finalAmount': deal.agreed_amount,
            'transactionDate': deal.created_at,
        },
        'seller': _party_details(deal.seller),
        'buyer': _party_details(deal.buyer),
    }
    if document_type == 'inspection_report':
        data['inspection'] = {'checklist': vehicle.inspection_checklist, 'score': vehicle.inspection_score}
    if document_type == 'delivery_receipt':
        data['delivery'] = {
            'partner': deal.logistics_partner,
            'bookingId': deal.transport_booking_id,
            'deliveredAt': deal.delivered_at,
        }
    # Round-trip through JSON so the stored form is exactly what was hashed
    return json.loads(canonical_json(data))


def generate_document(dealer, deal_id, document_type):
    if document_type not in dict(DigitalDocument.DOCUMENT_TYPE_CHOICES):
        raise DealError(f'Unknown document type: {document_type}')

    with db_transaction.atomic():
        deal = deal_services.lock_deal(deal_id)
        deal_services.require_party(deal, dealer)
        if deal.status not in DOCUMENT_STATUSES:
            raise DealError('Documents can be generated once the offer is accepted', status_code=409)
        if DigitalDocument.objects.filter(transaction=deal, document_type=document_type).exists():
            raise DealError('This document has already been generated', status_code=409)

        timestamp = int(time.time() * 1000)
        document_number = f"{document_type.upper()}-{deal.id}-{timestamp}"
        data = build_document_data(deal, document_type, document_number)
        document = DigitalDocument.objects.create(
            transaction=deal,
            document_type=document_type,
            template_used=f"{document_type}_template_v1",
            document_number=document_number,
            document_url=f"{settings.MEDIA_URL}documents/{deal.id}/{document_type}_{timestamp}.pdf",
            document_hash=compute_hash(data),
            document_data=data,
            access_permissions=[
                {'dealer_id': deal.seller_id, 'permission': 'sign'},
                {'dealer_id': deal.buyer_id, 'permission': 'sign'},
            ],
            created_by=dealer,
        )
        notify_dealer(
            deal.counterparty(dealer), 'document', 'Document ready to sign',
            f'{document.get_document_type_display()} for {deal.reference} is ready for your signature',
            link=deal_services.deal_link(deal), action_required=True, related_object_id=deal.id,
        )
    logger.info(f"Document {document.document_number} generated for deal {deal.id}")
    return document


def verify_document(document):
    """Integrity report comparing the stored hash against the stored content"""
    computed = compute_hash(document.document_data)
    return {
        'document_number': document.document_number,
        'stored_hash': document.document_hash,
        'computed_hash': computed,
        'is_valid': computed == document.document_hash,
        'legal_validity': document.legal_validity,
        'signed_by_seller': document.signed_by_seller,
        'signed_by_buyer': document.signed_by_buyer,
    }


def sign_document(dealer, document_id, request=None):
    """Sign for the dealer's side; the document is executed once both sides have signed"""
    with db_transaction.atomic():
        try:
            document = DigitalDocument.objects.select_for_update().select_related('transaction').get(pk=document_id)
        except DigitalDocument.DoesNotExist:
            raise DealError('Document not found', status_code=404)
        deal = document.transaction
        role = deal_services.require_party(deal, dealer)
        if document.legal_validity != 'draft':
            raise DealError('Document is already executed', status_code=409)
        if not verify_document(document)['is_valid']:
            logger.error(f"Hash mismatch on document {document.document_number}")
            raise DealError('Document integrity check failed', status_code=409)

        now = timezone.now()
        ip_address = get_client_ip(request)
        if role == 'seller':
            if document.signed_by_seller:
                raise DealError('You have already signed this document', status_code=409)
            document.signed_by_seller = True
            document.seller_signature_timestamp = now
            document.seller_ip_address = ip_address
        else:
            if document.signed_by_buyer:
                raise DealError('You have already signed this document', status_code=409)
            document.signed_by_buyer = True
            document.buyer_signature_timestamp = now
            document.buyer_ip_address = ip_address

        if document.signed_by_seller and document.signed_by_buyer:
            document.legal_validity = 'executed'
            document.executed_at = now
        document.save()

        notify_dealer(
            deal.counterparty(dealer), 'document',
            'Document executed' if document.legal_validity == 'executed' else 'Document signed',
            f'{dealer.business_name} signed the {document.get_document_type_display()} for {deal.reference}',
            link=deal_services.deal_link(deal), related_object_id=deal.id,
        )

    create_system_log(request=request, user=dealer.owner, action_type='document_signed', module='documents',
                      target_id=document.id, target_name=document.document_number,
                      details={'side': role, 'legal_validity': document.legal_validity})
    return document


# --- RTO ---

def _clean_document_urls(document_urls):
    cleaned = []
    for entry in document_urls or []:
        if not isinstance(entry, dict) or not validate_url(entry.get('url')):
            raise DealError('Each RTO document needs a type and a valid URL')
        cleaned.append({'type': sanitize_input(entry.get('type', '')), 'url': entry['url']})
    return cleaned


def submit_rto_application(dealer, deal_id, application_fee, document_urls=None):
    with db_transaction.atomic():
        deal = deal_services.lock_deal(deal_id)
        deal_services.require_party(deal, dealer)
        if deal.status not in RTO_STATUSES:
            raise DealError('RTO transfer can start once payment is in escrow', status_code=409)
        if deal.rto_applications.exclude(status='rejected').exists():
            raise DealError('An RTO application is already in progress for this deal', status_code=409)

        application = RTOApplication.objects.create(
            transaction=deal,
            vehicle=deal.vehicle,
            seller_name=deal.seller.business_name,
            seller_address=deal.seller.address,
            buyer_name=deal.buyer.business_name,
            buyer_address=deal.buyer.address,
            application_fee=application_fee,
            document_urls=_clean_document_urls(document_urls),
            submitted_by=dealer,
        )
        deal.rto_transfer_initiated = True
        deal.save(update_fields=['rto_transfer_initiated', 'updated_at'])
        deal_services.system_message(deal, 'RTO transfer application submitted.')
        notify_dealer(
            deal.counterparty(dealer), 'document', 'RTO transfer started',
            f'An RTO ownership transfer was filed for {deal.reference}',
            link=deal_services.deal_link(deal), related_object_id=deal.id,
        )
    return application


def update_rto_status(application_id, new_status, user, tracking_number='', rejection_reason='', request=None):
    """Platform admin moves an application one step along, or rejects it"""
    with db_transaction.atomic():
        try:
            application = RTOApplication.objects.select_for_update().get(pk=application_id)
        except RTOApplication.DoesNotExist:
            raise DealError('RTO application not found', status_code=404)
        previous = application.status
        if previous in ('completed', 'rejected'):
            raise DealError(f'Application is already {previous}', status_code=409)

        if new_status == 'rejected':
            if not rejection_reason:
                raise DealError('A rejection reason is required')
            application.rejection_reason = sanitize_input(rejection_reason)
        elif new_status not in RTO_FLOW or RTO_FLOW.index(new_status) != RTO_FLOW.index(previous) + 1:
            raise DealError(f'Cannot move application from {previous} to {new_status}', status_code=409)

        application.status = new_status
        if tracking_number:
            application.tracking_number = sanitize_input(tracking_number)
        application.save()

        deal = Transaction.objects.select_for_update().get(pk=application.transaction_id)
        if new_status == 'completed':
            deal.rto_transfer_completed = True
            deal.documents_transferred = True
            deal.save(update_fields=['rto_transfer_completed', 'documents_transferred', 'updated_at'])
        elif new_status == 'rejected':
            deal.rto_transfer_initiated = False
            deal.save(update_fields=['rto_transfer_initiated', 'updated_at'])

        label = application.get_status_display()
        for party in (deal.seller, deal.buyer):
            notify_dealer(
                party, 'document', f'RTO application {label.lower()}',
                f'RTO transfer for {deal.reference} is now {label.lower()}.'
                + (f' Reason: {application.rejection_reason}' if new_status == 'rejected' else ''),
                link=deal_services.deal_link(deal), priority='high' if new_status == 'rejected' else 'normal',
                related_object_id=deal.id,
            )

    create_system_log(request=request, user=user, action_type='rto_status_change', module='documents',
                      target_id=application.id, target_name=f'RTO #{application.id}',
                      details={'from': previous, 'to': new_status},
                      severity='warning' if new_status == 'rejected' else 'info')
    return application