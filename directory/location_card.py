"""Detail card content and contact actions for a selected location"""

from typing import Dict, List
from urllib.parse import quote, urlsplit

from config import Config
from models import LocationRecord

WEBSITE_SEPARATORS = (' - ', ' ; ')


def split_websites(raw: str) -> List[str]:
    """'a.fr - b.fr ; c.fr' -> ['a.fr', 'b.fr', 'c.fr']"""
    if not raw:
        return []
    parts = [raw]
    for sep in WEBSITE_SEPARATORS:
        parts = [piece for part in parts for piece in part.split(sep)]
    return [p.strip() for p in parts if p.strip()]


def website_link(url: str) -> Dict:
    """Display form of a website; non-URLs are shown as plain text"""
    try:
        parsed = urlsplit(url)
    except ValueError:
        # e.g. an unbalanced IPv6 bracket
        return {'href': None, 'label': url, 'is_link': False}
    if parsed.scheme and parsed.netloc:
        host = parsed.hostname or parsed.netloc
        if host.startswith('www.'):
            host = host[4:]
        return {'href': url, 'label': host, 'is_link': True}
    return {'href': None, 'label': url, 'is_link': False}


def address_lines(record: LocationRecord) -> List[str]:
    locality = ' '.join(part for part in (record.postal_code, record.city) if part)
    return [line for line in (record.address, locality) if line]


def facet_tags(values, group_id: str) -> List[Dict]:
    icons = {}
    for group in Config.FILTER_GROUPS:
        if group['id'] == group_id:
            icons = group['data']
    return [{'label': v, 'icon': icons.get(v, '')} for v in sorted(values)]


def build_card(record: LocationRecord) -> Dict:
    """Synthetic card shown on selection; contact details stay hidden"""
    return {
        'code': record.code,
        'type': record.category,
        'type_label': 'École MCF' if record.is_school else 'Moniteur indépendant',
        'name': record.name or '',
        'address': address_lines(record),
        'disciplines': facet_tags(record.disciplines, 'discipline'),
        'prestations': facet_tags(record.services, 'prestation'),
        'tests_mcf': facet_tags(record.certifications, 'test_mcf'),
    }


def reveal_coordinates(record: LocationRecord) -> Dict:
    """Contact block shown after 'Voir les coordonnées'"""
    return {
        'phone': record.phone or None,
        'email': record.email or None,
        'websites': [website_link(url) for url in split_websites(record.website)],
        'contact_label': f"Contacter {record.name}",
        'contact_url': contact_url(record),
    }


def contact_url(record: LocationRecord, base_url: str = None) -> str:
    base_url = base_url or Config.CONTACT_URL
    # Same escaping as encodeURIComponent
    contact = quote(record.name or '', safe="-_.!~*'()")
    return f"{base_url}?id={record.code}&contact={contact}"
