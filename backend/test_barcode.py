from borrowtrack.services.barcode import (
    generate_barcode,
    generate_borrowing_barcode,
    generate_item_barcode,
    generate_user_barcode,
    hash_string,
    parse_barcode,
)


def test_generate_barcode_pads_to_eight():
    assert generate_barcode("42", "I") == "I00000042"
    assert generate_barcode("123456789", "B") == "B123456789"


def test_item_barcode_uses_id_digits():
    assert generate_item_barcode("t1") == "I00000001"
    assert generate_item_barcode("m12") == "I00000012"


def test_borrowing_barcode_keeps_long_ids():
    assert generate_borrowing_barcode("b1715000000123") == "B1715000000123"


def test_hash_string_matches_31_polynomial():
    assert hash_string("") == 0
    assert hash_string("a") == 97
    assert hash_string("hello") == 99162322
    # 32-bit wrap: this string hashes to -2**31
    assert hash_string("polygenelubricants") == 2147483648


def test_user_barcode():
    # a=97, @ -> 97*31+64=3071, b -> 3071*31+98=95299
    assert generate_user_barcode("a@b") == "U00095299"


def test_parse_barcode():
    assert parse_barcode("I00000001") == ("00000001", "item")
    assert parse_barcode("B1715000000123") == ("1715000000123", "borrowing")
    assert parse_barcode("U00095299") == ("00095299", "user")
    assert parse_barcode("X123") == ("X123", "unknown")
    assert parse_barcode("") == ("", "unknown")
