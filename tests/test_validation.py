import re

import pytest

from utils.validation import (
    CBU_LENGTH_MESSAGE,
    NAME_LENGTH_MESSAGE,
    generate_shop_id,
    normalize_alias,
    normalize_cbu,
    normalize_whatsapp,
    slugify,
    validate_cbu,
    validate_shop_name,
)


@pytest.mark.parametrize("name", ["Modas", "Modas Ana", "  Ropa  ", "x" * 20])
def test_shop_name_within_bounds(name):
    assert validate_shop_name(name) == (True, "")


@pytest.mark.parametrize("name", ["", "Ana", "   ab   ", "x" * 21])
def test_shop_name_out_of_bounds(name):
    assert validate_shop_name(name) == (False, NAME_LENGTH_MESSAGE)


def test_shop_name_message_is_user_facing():
    assert NAME_LENGTH_MESSAGE == "El nombre de la tienda debe tener entre 4 y 20 caracteres."


def test_cbu_empty_is_allowed():
    assert validate_cbu("") == (True, "")
    assert validate_cbu(None) == (True, "")


def test_cbu_short_is_rejected():
    ok, err = validate_cbu("12345")
    assert not ok
    assert err == CBU_LENGTH_MESSAGE


def test_cbu_accepts_22_digits_with_separators():
    assert validate_cbu("0000 0031 0001 0000 0000 01")[0]
    assert normalize_cbu("0000 0031-0001 0000 0000 01") == "0000003100010000000001"


def test_whatsapp_keeps_digits_and_leading_plus():
    assert normalize_whatsapp("+54 9 11 1234-5678") == "+5491112345678"
    assert normalize_whatsapp("(011) 4444-5555") == "01144445555"
    assert normalize_whatsapp("54+911") == "54911"
    assert normalize_whatsapp("") == ""


def test_alias_is_upper_cased():
    assert normalize_alias(" modas.ana.mp ") == "MODAS.ANA.MP"


def test_slugify_strips_accents_and_symbols():
    assert slugify("Artículos de Niño!") == "articulos-de-nino"
    assert slugify("¡¡¡") == "tienda"
    assert len(slugify("a" * 80)) == 40


def test_generate_shop_id_has_random_suffix():
    shop_id = generate_shop_id("Modas Ana")
    assert re.fullmatch(r"modas-ana-[0-9a-f]{6}", shop_id)
    assert generate_shop_id("Modas Ana") != shop_id
