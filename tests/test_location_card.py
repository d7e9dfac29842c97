import pytest

from models import LocationRecord
from directory.location_card import (
    address_lines, build_card, contact_url, facet_tags, reveal_coordinates, split_websites, website_link,
)


def _record(**fields):
    base = dict(code=5, name='Vélo & Co', is_school=False, position=(2.35, 48.85))
    base.update(fields)
    return LocationRecord(**base)


@pytest.mark.parametrize('raw,expected', [
    ('', []),
    ('https://a.fr', ['https://a.fr']),
    ('https://a.fr - https://b.fr', ['https://a.fr', 'https://b.fr']),
    ('https://a.fr ; https://b.fr - c.fr', ['https://a.fr', 'https://b.fr', 'c.fr']),
    ('https://mon-site.fr', ['https://mon-site.fr']),
])
def test_split_websites(raw, expected):
    assert split_websites(raw) == expected


def test_website_link():
    assert website_link('https://www.velo-annecy.fr/stages') == {
        'href': 'https://www.velo-annecy.fr/stages', 'label': 'velo-annecy.fr', 'is_link': True,
    }
    assert website_link('velo-annecy.fr') == {'href': None, 'label': 'velo-annecy.fr', 'is_link': False}
    assert website_link('http://[broken') == {'href': None, 'label': 'http://[broken', 'is_link': False}


def test_reveal_with_malformed_website_falls_back_to_text():
    revealed = reveal_coordinates(_record(website='http://[broken - https://ok.fr'))
    assert [w['is_link'] for w in revealed['websites']] == [False, True]
    assert revealed['websites'][1]['label'] == 'ok.fr'


def test_contact_url_encodes_like_encode_uri_component():
    assert contact_url(_record()) == (
        'https://www.moniteurcycliste.com/contactcarto?id=5&contact=V%C3%A9lo%20%26%20Co'
    )
    assert contact_url(_record(name="L'atelier (Annecy)"), base_url='https://x.test/c') == (
        "https://x.test/c?id=5&contact=L'atelier%20(Annecy)"
    )


def test_address_lines():
    assert address_lines(_record(address='1 place Bellecour', postal_code='69002', city='Lyon')) == [
        '1 place Bellecour', '69002 Lyon',
    ]
    assert address_lines(_record(city='Lyon')) == ['Lyon']
    assert address_lines(_record()) == []


def test_facet_tags_carry_icons():
    tags = facet_tags({'VTT', 'Inconnu'}, 'discipline')
    assert tags == [{'label': 'Inconnu', 'icon': ''}, {'label': 'VTT', 'icon': 'fas fa-biking'}]


def test_build_card_hides_contact_details():
    card = build_card(_record(is_school=True, phone='0600000000', email='a@b.fr',
                              certifications=frozenset({'Bikers'})))
    assert card['type'] == 'ecole'
    assert card['type_label'] == 'École MCF'
    assert card['tests_mcf'] == [{'label': 'Bikers', 'icon': 'fa-solid fa-person-biking'}]
    assert 'phone' not in card and 'email' not in card


def test_reveal_coordinates():
    revealed = reveal_coordinates(_record(phone='0600000000'))
    assert revealed['phone'] == '0600000000'
    assert revealed['email'] is None
    assert revealed['websites'] == []
    assert revealed['contact_label'] == 'Contacter Vélo & Co'
