"""
Input sanitisation and field validators shared by every app.

Validators are pure functions: boolean checks return True/False, composite
checks return a dict (``is_valid`` plus ``errors`` or advisory messages) so
serializers can map them onto DRF field errors.
"""
import html
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from urllib.parse import urlparse

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

MAX_INPUT_LENGTH = 2000

EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
PHONE_RE = re.compile(r'^(\+91)?[6-9]\d{9}$')
PAN_RE = re.compile(r'^[A-Z]{5}[0-9]{4}[A-Z]$')
GSTIN_RE = re.compile(r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$')
IFSC_RE = re.compile(r'^[A-Z]{4}0[A-Z0-9]{6}$')
PINCODE_RE = re.compile(r'^[0-9]{6}$')
VIN_RE = re.compile(r'^[A-HJ-NPR-Z0-9]{17}$')
BANK_ACCOUNT_RE = re.compile(r'^[0-9]{9,18}$')
TAG_RE = re.compile(r'<[^>]*>?', re.MULTILINE)
PHONE_SEPARATORS_RE = re.compile(r'[\s\-()]')

MIN_PRICE = Decimal('10000')
MAX_PRICE = Decimal('100000000')
MIN_YEAR = 1990

IMAGE_CONTENT_TYPES = ('image/jpeg', 'image/jpg', 'image/png', 'image/webp')
IMAGE_MAX_BYTES = 10 * 1024 * 1024
DOCUMENT_CONTENT_TYPES = ('application/pdf', 'image/jpeg', 'image/jpg', 'image/png')
DOCUMENT_MAX_BYTES = 5 * 1024 * 1024


def _to_decimal(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None


def _to_int(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        number = _to_decimal(value)
        return int(number) if number is not None and number.is_finite() else None


def _is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


# --- Sanitisation ---

def sanitize_input(value):
    """Strip markup, escape HTML-significant characters, trim and cap length.

    Non-string values are returned untouched.
    """
    if not isinstance(value, str):
        return value
    cleaned = TAG_RE.sub('', value)
    cleaned = html.escape(cleaned, quote=True)
    return cleaned.strip()[:MAX_INPUT_LENGTH]


def sanitize_and_validate_text(value, min_length=0, max_length=1000):
    sanitized = sanitize_input(value) or ''
    if min_length > 0 and len(sanitized) < min_length:
        return {'is_valid': False, 'sanitized': sanitized,
                'error': f'Text must be at least {min_length} characters long'}
    if len(sanitized) > max_length:
        return {'is_valid': False, 'sanitized': sanitized[:max_length],
                'error': f'Text must not exceed {max_length} characters'}
    return {'is_valid': True, 'sanitized': sanitized}


# --- Contact and identity ---

def validate_email(email):
    if not email or not isinstance(email, str):
        return False
    return bool(EMAIL_RE.match(email)) and len(email) <= 254


def clean_phone(phone):
    return PHONE_SEPARATORS_RE.sub('', phone or '')


def validate_phone(phone):
    """Indian mobile number, optionally prefixed with +91"""
    if not phone or not isinstance(phone, str):
        return False
    return bool(PHONE_RE.match(clean_phone(phone)))


def format_phone(phone):
    if not phone:
        return ''
    cleaned = clean_phone(phone)
    if cleaned.startswith('+91'):
        number = cleaned[3:]
        return f'+91 {number[:5]} {number[5:]}'
    if len(cleaned) == 10:
        return f'{cleaned[:5]} {cleaned[5:]}'
    return phone


# --- Indian business documents ---
# PAN, GSTIN and VIN are optional: an empty value is valid.

def validate_pan(pan):
    if not pan or not isinstance(pan, str):
        return True
    return len(pan) == 10 and bool(PAN_RE.match(pan.upper()))


def validate_gstin(gstin):
    if not gstin or not isinstance(gstin, str):
        return True
    return len(gstin) == 15 and bool(GSTIN_RE.match(gstin.upper()))


def validate_bank_account(account_number):
    if not account_number or not isinstance(account_number, str):
        return False
    return bool(BANK_ACCOUNT_RE.match(re.sub(r'[\s\-]', '', account_number)))


def validate_ifsc(ifsc):
    if not ifsc or not isinstance(ifsc, str):
        return False
    return len(ifsc) == 11 and bool(IFSC_RE.match(ifsc.upper()))


def validate_pincode(pincode):
    if not pincode or not isinstance(pincode, str):
        return False
    return bool(PINCODE_RE.match(pincode))


# --- Vehicle fields ---

def validate_vin(vin):
    if not vin or not isinstance(vin, str):
        return True
    return len(vin) == 17 and bool(VIN_RE.match(vin.upper()))


def validate_price(price):
    number = _to_decimal(price)
    return number is not None and number.is_finite() and MIN_PRICE <= number <= MAX_PRICE


def validate_year(year):
    number = _to_int(year)
    return number is not None and MIN_YEAR <= number <= timezone.now().year + 1


def _optional_range(value, low, high):
    if _is_blank(value):
        return True
    number = _to_decimal(value)
    return number is not None and number.is_finite() and Decimal(str(low)) <= number <= Decimal(str(high))


def validate_kilometers(km):
    return _optional_range(km, 0, 2000000)


def validate_engine_capacity(capacity):
    """Engine capacity in litres"""
    return _optional_range(capacity, '0.1', '20')


def validate_power(power):
    """Power in horsepower"""
    return _optional_range(power, 1, 2000)


# --- Business rules ---

def _lakhs(amount):
    return f'{amount / Decimal(100000):.1f}'


def validate_offer(offer_amount, vehicle_price):
    """
    Judge an offer against the asking price.

    Returns a dict with ``is_valid`` and optionally ``error``, ``warning``
    and ``suggestion``. Only a non-positive offer is invalid; everything
    else is advisory.
    """
    offer = _to_decimal(offer_amount)
    price = _to_decimal(vehicle_price)

    if offer is None or not offer.is_finite() or offer <= 0:
        return {'is_valid': False, 'error': 'Offer amount must be greater than 0', 'suggestion': None}

    if price is None or not price.is_finite() or price <= 0:
        return {'is_valid': True, 'warning': 'Unable to compare with asking price', 'suggestion': None}

    percent_below = (price - offer) / price * 100

    if offer > price * Decimal('1.1'):
        return {
            'is_valid': True,
            'warning': 'Your offer is significantly above asking price',
            'suggestion': f'Consider offering closer to ₹{_lakhs(price)}L',
        }

    if percent_below > 30:
        return {
            'is_valid': True,
            'warning': 'Your offer is significantly below asking price and may be rejected',
            'suggestion': f'Consider offering at least ₹{_lakhs(price * Decimal("0.8"))}L',
        }

    if percent_below > 15:
        suggestion = f'Your offer is {percent_below:.1f}% below asking price'
    else:
        suggestion = 'Your offer is within reasonable range'
    return {'is_valid': True, 'suggestion': suggestion}


def validate_rating(rating):
    number = _to_decimal(rating)
    return number is not None and number.is_finite() and 1 <= number <= 5


def validate_inspection_score(score):
    number = _to_int(score)
    return number is not None and 0 <= number <= 100


# --- URLs and uploads ---

def validate_url(url):
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def _validate_upload(upload, allowed_types, max_bytes, type_error, size_error):
    content_type = getattr(upload, 'content_type', None)
    size = getattr(upload, 'size', 0) or 0
    if content_type not in allowed_types:
        return {'is_valid': False, 'error': type_error}
    if size > max_bytes:
        return {'is_valid': False, 'error': size_error}
    return {'is_valid': True}


def validate_image_file(upload):
    return _validate_upload(upload, IMAGE_CONTENT_TYPES, IMAGE_MAX_BYTES,
                            'Only JPEG, PNG, and WebP images are allowed',
                            'Image size must be less than 10MB')


def validate_document_file(upload):
    return _validate_upload(upload, DOCUMENT_CONTENT_TYPES, DOCUMENT_MAX_BYTES,
                            'Only PDF, JPEG, and PNG files are allowed for documents',
                            'Document size must be less than 5MB')


# --- Dates ---

def parse_date_value(value):
    """Return a datetime for a date/datetime/ISO string, or None"""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = parse_datetime(value.strip())
            if parsed is None:
                day = parse_date(value.strip())
                parsed = datetime(day.year, day.month, day.day) if day else None
        except ValueError:
            return None
    else:
        return None
    if parsed is not None and timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def validate_date(value, allow_past=True):
    parsed = parse_date_value(value)
    if parsed is None:
        return False
    if not allow_past and parsed < timezone.now():
        return False
    return True


def validate_date_range(start, end):
    if not validate_date(start) or not validate_date(end):
        return False
    return parse_date_value(start) <= parse_date_value(end)


# --- Whole-record validation ---

def validate_dealer_profile(data):
    errors = {}

    if not data.get('business_name') or len(data['business_name']) < 2:
        errors['business_name'] = 'Business name must be at least 2 characters'
    if not data.get('phone') or not validate_phone(data['phone']):
        errors['phone'] = 'Please enter a valid Indian phone number'
    if not data.get('business_type'):
        errors['business_type'] = 'Please select a business type'
    if not data.get('address') or len(data['address']) < 10:
        errors['address'] = 'Please enter a complete address (minimum 10 characters)'
    if not data.get('city'):
        errors['city'] = 'City is required'
    if not data.get('state'):
        errors['state'] = 'State is required'

    if data.get('gstin') and not validate_gstin(data['gstin']):
        errors['gstin'] = 'Invalid GSTIN format (15 characters: 2 digits + 10 alphanumeric + 1 check digit + 2 alphanumeric)'
    if data.get('pan') and not validate_pan(data['pan']):
        errors['pan'] = 'Invalid PAN format (10 characters: 5 letters + 4 digits + 1 letter)'
    if data.get('pincode') and not validate_pincode(data['pincode']):
        errors['pincode'] = 'Invalid pincode (must be 6 digits)'
    if data.get('account_number') and not validate_bank_account(data['account_number']):
        errors['account_number'] = 'Bank account number must be 9-18 digits'
    if data.get('ifsc_code') and not validate_ifsc(data['ifsc_code']):
        errors['ifsc_code'] = 'Invalid IFSC code format (11 characters: 4 letters + 0 + 6 alphanumeric)'
    if data.get('email') and not validate_email(data['email']):
        errors['email'] = 'Please enter a valid email address'

    return {'is_valid': not errors, 'errors': errors}


def validate_vehicle_data(data):
    errors = {}

    if not data.get('make') or len(str(data['make'])) < 2:
        errors['make'] = 'Vehicle make is required'
    if not data.get('model'):
        errors['model'] = 'Vehicle model is required'
    if not data.get('year') or not validate_year(data['year']):
        errors['year'] = f'Please enter a valid year ({MIN_YEAR}-{timezone.now().year + 1})'
    if not data.get('price') or not validate_price(data['price']):
        errors['price'] = 'Price must be between ₹10,000 and ₹10 crores'
    if not data.get('fuel_type'):
        errors['fuel_type'] = 'Fuel type is required'
    if not data.get('transmission'):
        errors['transmission'] = 'Transmission type is required'

    if data.get('kilometers') and not validate_kilometers(data['kilometers']):
        errors['kilometers'] = 'Kilometers must be between 0 and 20 lakhs'
    if data.get('vin') and not validate_vin(data['vin']):
        errors['vin'] = 'Invalid VIN format (17 characters, no I, O, or Q)'
    if data.get('engine_capacity') and not validate_engine_capacity(data['engine_capacity']):
        errors['engine_capacity'] = 'Engine capacity must be between 0.1L and 20L'
    if data.get('power') and not validate_power(data['power']):
        errors['power'] = 'Power must be between 1 HP and 2000 HP'
    if data.get('seating_capacity'):
        seats = _to_int(data['seating_capacity'])
        if seats is None or not 1 <= seats <= 50:
            errors['seating_capacity'] = 'Seating capacity must be between 1 and 50'
    if data.get('owners'):
        owners = _to_int(data['owners'])
        if owners is None or not 0 <= owners <= 20:
            errors['owners'] = 'Number of owners must be between 0 and 20'

    return {'is_valid': not errors, 'errors': errors}


# --- Display helpers ---

def format_indian_number(value):
    """Group digits the Indian way: 12,34,567"""
    number = int(value)
    sign = '-' if number < 0 else ''
    digits = str(abs(number))
    if len(digits) <= 3:
        return sign + digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return sign + ','.join(groups + [tail])


def format_price(price):
    number = _to_decimal(price)
    if not number or not number.is_finite():
        return 'Price not set'
    if number >= 10000000:
        return f'₹{number / Decimal(10000000):.1f} Cr'
    if number >= 100000:
        return f'₹{number / Decimal(100000):.1f} L'
    return f'₹{format_indian_number(number)}'


def format_kilometers(km):
    number = _to_decimal(km)
    if number is None or not number.is_finite():
        return 'N/A'
    return f'{format_indian_number(number)} km'
