"""
LLM-backed content generation.

When ``LLM_API_URL`` is configured the prompt and a JSON schema are POSTed
to it and the JSON object it returns is used. Without an endpoint, or when
the call fails, every function falls back to locally templated output so
the marketing features keep working offline.
"""
import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from statistics import median

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

CONTENT_SCHEMA = {
    'type': 'object',
    'properties': {
        'title': {'type': 'string'},
        'description': {'type': 'string'},
        'hashtags': {'type': 'array', 'items': {'type': 'string'}},
        'call_to_action': {'type': 'string'},
        'target_audience': {'type': 'string'},
        'estimated_reach': {'type': 'number'},
    },
}

FEEDBACK_SCHEMA = {
    'type': 'object',
    'properties': {
        'positive_aspects': {'type': 'array', 'items': {'type': 'string'}},
        'improvement_areas': {'type': 'array', 'items': {'type': 'string'}},
        'recommendations': {'type': 'array', 'items': {'type': 'string'}},
        'confidence_score': {'type': 'number'},
    },
}

INSIGHTS_SCHEMA = {
    'type': 'object',
    'properties': {
        'preferred_styles': {'type': 'array', 'items': {'type': 'string'}},
        'effective_platforms': {'type': 'array', 'items': {'type': 'string'}},
        'content_strategies': {'type': 'array', 'items': {'type': 'string'}},
        'improvement_areas': {'type': 'array', 'items': {'type': 'string'}},
        'trending_opportunities': {'type': 'array', 'items': {'type': 'string'}},
        'overall_score': {'type': 'number'},
    },
}

RECOMMENDATIONS_SCHEMA = {
    'type': 'object',
    'properties': {
        'recommended_content_types': {'type': 'array', 'items': {'type': 'string'}},
        'optimal_posting_times': {'type': 'array', 'items': {'type': 'string'}},
        'target_strategies': {'type': 'array', 'items': {'type': 'string'}},
        'trending_focus': {'type': 'array', 'items': {'type': 'string'}},
        'priority_vehicles': {'type': 'array', 'items': {'type': 'string'}},
    },
}

PRICE_SCHEMA = {
    'type': 'object',
    'properties': {
        'suggested_price': {'type': 'number'},
        'price_range_min': {'type': 'number'},
        'price_range_max': {'type': 'number'},
        'justification': {'type': 'string'},
    },
}

PLATFORM_REACH = {
    'instagram': 5000,
    'facebook': 4000,
    'youtube': 3000,
    'twitter': 1500,
    'linkedin': 1000,
    'whatsapp': 800,
    'general': 2000,
}

PLATFORM_CTA = {
    'instagram': 'DM us to book a test drive today!',
    'facebook': 'Message us or call now to book a test drive.',
    'youtube': 'Subscribe and call us to see it in person.',
    'twitter': 'Reply or DM for details.',
    'linkedin': 'Get in touch with our sales team.',
    'whatsapp': 'WhatsApp us for the best price.',
}

# Rough new-car price used when there are no comparable listings
BASE_NEW_PRICE = Decimal('800000')
ANNUAL_DEPRECIATION = Decimal('0.12')
PER_KM_DEPRECIATION = Decimal('1.5')


def invoke_llm(prompt, schema):
    """Return the endpoint's JSON object, or None when unavailable"""
    url = getattr(settings, 'LLM_API_URL', '')
    if not url:
        return None

    headers = {'Content-Type': 'application/json'}
    api_key = getattr(settings, 'LLM_API_KEY', '')
    if api_key:
        headers['Authorization'] = f'Bearer {api_key}'

    try:
        response = requests.post(
            url,
            json={'prompt': prompt, 'response_json_schema': schema},
            headers=headers,
            timeout=getattr(settings, 'LLM_TIMEOUT_SECONDS', 30),
        )
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.Timeout:
        logger.warning(f"LLM request timed out after {settings.LLM_TIMEOUT_SECONDS}s; using template output")
        return None
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"LLM request failed: {str(e)}; using template output")
        return None

    if not isinstance(data, dict):
        logger.warning(f"LLM returned {type(data).__name__}, expected an object; using template output")
        return None
    # Some gateways wrap the object
    if isinstance(data.get('result'), dict):
        data = data['result']
    return data


def _merge(fallback, generated):
    """Fill any keys the model left out from the template output"""
    if not generated:
        return fallback
    merged = dict(fallback)
    merged.update({key: value for key, value in generated.items() if key in fallback and value not in (None, '')})
    return merged


def _lakhs(amount):
    return f"{Decimal(amount) / Decimal('100000'):.1f}L"


def _tag(text):
    return '#' + ''.join(ch for ch in str(text).title() if ch.isalnum())


def generate_content(vehicle, content_type='social_post', platform='instagram', preferences=None):
    """Title, description, hashtags, call to action, audience and reach for a vehicle"""
    dealer = vehicle.dealer
    prompt = (
        f"Generate {content_type} marketing content for a {vehicle.display_name}.\n"
        f"Price: Rs {_lakhs(vehicle.price)}, Kilometers: {vehicle.kilometers}, Fuel: {vehicle.fuel_type}, "
        f"Color: {vehicle.color or 'n/a'}, Condition score: {vehicle.inspection_score}\n"
        f"Dealer: {dealer.business_name}, {dealer.city}\n"
        f"Platform: {platform}\nDealer preferences: {preferences or {}}\n"
        f"Create engaging, professional content with hashtags and a call to action for {platform}."
    )

    highlights = [f"{vehicle.kilometers:,} km", vehicle.get_fuel_type_display(), vehicle.get_transmission_display()]
    if vehicle.owners == 1:
        highlights.append('single owner')
    if vehicle.rc_verified:
        highlights.append('RC verified')

    fallback = {
        'title': f"{vehicle.display_name} for Rs {_lakhs(vehicle.price)}",
        'description': (
            f"Well maintained {vehicle.display_name}"
            f"{' ' + vehicle.variant if vehicle.variant else ''}: {', '.join(highlights)}. "
            f"Available now at {dealer.business_name}, {dealer.city}."
        ),
        'hashtags': [_tag(vehicle.make), _tag(vehicle.model), _tag(f'used {vehicle.make}'),
                     '#UsedCars', '#CertifiedPreOwned', _tag(dealer.city)],
        'call_to_action': PLATFORM_CTA.get(platform, 'Contact us today for a test drive.'),
        'target_audience': f"Buyers in {dealer.city or dealer.state} looking for a {vehicle.get_fuel_type_display().lower()} "
                           f"{vehicle.make} around Rs {_lakhs(vehicle.price)}",
        'estimated_reach': PLATFORM_REACH.get(platform, PLATFORM_REACH['general']),
    }
    return _merge(fallback, invoke_llm(prompt, CONTENT_SCHEMA))


def process_ai_feedback(asset, rating, feedback=''):
    """Insights from a dealer's rating of a generated asset"""
    prompt = (
        "Analyze dealer feedback for AI improvement:\n"
        f"Asset: {asset.asset_type} on {asset.platform}\n"
        f"Dealer Rating: {rating}/5 stars\nDealer Feedback: \"{feedback}\"\n"
        "Extract what worked, what needs improvement and recommendations for future content."
    )

    positive, improvements, recommendations = [], [], []
    if rating >= 4:
        positive.append(f"{asset.get_asset_type_display()} format works well on {asset.platform}")
        recommendations.append(f"Generate more {asset.get_asset_type_display().lower()} assets")
    if rating <= 2:
        improvements.append(f"{asset.get_asset_type_display()} output did not meet expectations")
        recommendations.append('Try a different style or platform for this vehicle')
    if rating == 3:
        improvements.append('Content is acceptable but not compelling')
        recommendations.append('Highlight vehicle features and price more prominently')
    if feedback:
        (positive if rating >= 4 else improvements).append(f'Dealer noted: {feedback[:200]}')

    fallback = {
        'positive_aspects': positive,
        'improvement_areas': improvements,
        'recommendations': recommendations,
        'confidence_score': 0.5 if not feedback else 0.7,
    }
    return _merge(fallback, invoke_llm(prompt, FEEDBACK_SCHEMA))


def personalised_insights(dealer, rated_assets):
    """Preference profile built from the dealer's rated assets"""
    lines = '\n'.join(
        f"- {asset.asset_type} ({asset.platform}): {asset.dealer_rating}/5"
        + (f' - Feedback: "{asset.dealer_feedback}"' if asset.dealer_feedback else '')
        for asset in rated_assets
    )
    prompt = (
        "Analyze dealer's marketing asset preferences and provide personalized insights:\n"
        f"Dealer Business: {dealer.business_name}\nTotal Rated Assets: {len(rated_assets)}\n"
        f"Asset Ratings:\n{lines}\n"
        "Provide preferred styles, effective platforms, content strategies, improvement areas "
        "and trending opportunities."
    )

    liked = [asset for asset in rated_assets if asset.dealer_rating >= 4]
    disliked = [asset for asset in rated_assets if asset.dealer_rating <= 2]
    average = (sum(asset.dealer_rating for asset in rated_assets) / len(rated_assets)) if rated_assets else 0

    fallback = {
        'preferred_styles': sorted({asset.get_asset_type_display() for asset in liked}),
        'effective_platforms': sorted({asset.platform for asset in liked}),
        'content_strategies': ['Lead with price and key specs', 'Post consistently for each new listing'],
        'improvement_areas': sorted({asset.get_asset_type_display() for asset in disliked}),
        'trending_opportunities': ['Short-form vehicle walkaround reels', '360 views for premium listings'],
        'overall_score': round(average * 20),
    }
    return _merge(fallback, invoke_llm(prompt, INSIGHTS_SCHEMA))


def marketing_recommendations(dealer, vehicles, asset_count):
    vehicle_names = [vehicle.display_name for vehicle in vehicles[:5]]
    prompt = (
        "Generate personalized marketing recommendations for dealer:\n"
        f"Dealer: {dealer.business_name}\nLocation: {dealer.city}, {dealer.state}\n"
        f"Vehicle Inventory: {len(vehicles)} vehicles\nGenerated Assets: {asset_count} assets\n"
        f"Vehicle Types: {', '.join(vehicle_names)}\n"
        "Recommend content types, posting times, target audience strategies and trending categories."
    )

    by_age = sorted(vehicles, key=lambda vehicle: vehicle.days_in_stock, reverse=True)
    content_types = ['social_post', 'marketing_reel']
    if any(vehicle.price > Decimal('800000') for vehicle in vehicles):
        content_types.append('360_view')
    if asset_count == 0:
        content_types.insert(0, 'enhanced_image')

    fallback = {
        'recommended_content_types': content_types,
        'optimal_posting_times': ['Weekdays 7-9 PM', 'Saturday 10 AM-1 PM'],
        'target_strategies': [f'Target buyers within 50 km of {dealer.city}' if dealer.city else 'Target local buyers',
                              'Retarget people who viewed similar listings'],
        'trending_focus': sorted({vehicle.make for vehicle in vehicles})[:3],
        'priority_vehicles': [vehicle.display_name for vehicle in by_age[:3]],
    }
    return _merge(fallback, invoke_llm(prompt, RECOMMENDATIONS_SCHEMA))


def _round_to_thousand(amount):
    return int((Decimal(amount) / 1000).quantize(Decimal('1'), rounding=ROUND_HALF_UP) * 1000)


def suggest_price(make, model, year, kilometers=None, fuel_type=None):
    """Fair market price with a +/-8% range, based on comparable listings when we have them"""
    from backend.vehicles.models import Vehicle

    prompt = (
        f"Given a {year} {make} {model} with {kilometers if kilometers is not None else 'unknown'} kilometers"
        f"{' (' + fuel_type + ')' if fuel_type else ''}, what would be a fair market price in Indian Rupees? "
        "Consider current market conditions, depreciation, and typical pricing for this vehicle. "
        "Also provide a brief justification."
    )

    comparables = Vehicle.objects.filter(
        make__iexact=make, model__iexact=model, status__in=['live', 'sold'],
        year__gte=year - 1, year__lte=year + 1,
    ).values_list('price', flat=True)
    prices = [Decimal(price) for price in comparables]

    if prices:
        base = Decimal(median(prices))
        justification = f"Median of {len(prices)} comparable {make} {model} listings from {year - 1}-{year + 1}"
    else:
        age = max(date.today().year - int(year), 0)
        base = BASE_NEW_PRICE * (1 - ANNUAL_DEPRECIATION) ** age
        if kilometers:
            base -= PER_KM_DEPRECIATION * kilometers
        base = max(base, Decimal('50000'))
        justification = (f"No comparable listings; estimated from typical depreciation of "
                         f"{int(ANNUAL_DEPRECIATION * 100)}% per year over {age} years")
        if kilometers:
            justification += f" and {kilometers:,} km of use"

    fallback = {
        'suggested_price': _round_to_thousand(base),
        'price_range_min': _round_to_thousand(base * Decimal('0.92')),
        'price_range_max': _round_to_thousand(base * Decimal('1.08')),
        'justification': justification,
    }
    return _merge(fallback, invoke_llm(prompt, PRICE_SCHEMA))
