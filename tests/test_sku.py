import random

from backoffice.variations.sku import (
    PLACEHOLDER_TOKEN,
    SKU_PATTERN,
    generate_sku,
    is_generated_sku,
    parse_sku,
    row_sku_parts,
    slugify,
)


def test_generated_sku_matches_pattern_for_many_seeds():
    parts = ["Acme Corp", " t  shirt ", "", None, "Blue"]
    for seed in range(200):
        sku = generate_sku(parts, rng=random.Random(seed))
        assert SKU_PATTERN.match(sku), sku
        tokens, suffix = parse_sku(sku)
        assert tokens == ["ACME", "CORP", "T", "SHIRT", "BLUE"]
        assert 1000 <= int(suffix) <= 9999


def test_same_seed_gives_same_sku():
    a = generate_sku(["tee"], rng=random.Random(42))
    b = generate_sku(["tee"], rng=random.Random(42))
    assert a == b


def test_only_first_ten_tokens_are_kept():
    sku = generate_sku([f"p{i}" for i in range(15)], rng=random.Random(1))
    tokens, _ = parse_sku(sku)
    assert tokens == [f"P{i}" for i in range(10)]
    assert SKU_PATTERN.match(sku)


def test_dashes_inside_parts_count_as_tokens():
    sku = generate_sku(["--a--b--", "c"], rng=random.Random(3))
    assert parse_sku(sku)[0] == ["A", "B", "C"]


def test_no_usable_parts_falls_back_to_placeholder_token():
    for parts in ([], ["", "   "], [None, "--", "!!"]):
        sku = generate_sku(parts, rng=random.Random(5))
        assert is_generated_sku(sku), sku
        assert parse_sku(sku)[0] == [PLACEHOLDER_TOKEN]


def test_punctuation_and_accents_are_normalized_to_uppercase_tokens():
    sku = generate_sku(["Café", "t/shirt", "50% off"], rng=random.Random(2))
    assert SKU_PATTERN.match(sku), sku
    assert parse_sku(sku)[0] == ["CAFE", "T", "SHIRT", "50", "OFF"]


def test_token_limit_is_capped_by_the_format():
    sku = generate_sku([f"p{i}" for i in range(15)], rng=random.Random(1), max_tokens=40)
    assert len(parse_sku(sku)[0]) == 10
    assert SKU_PATTERN.match(sku)


def test_pattern_rejects_lowercase_and_punctuation_tokens():
    assert SKU_PATTERN.match("ACME-TEE-4821")
    assert not SKU_PATTERN.match("acme-tee-4821")
    assert not SKU_PATTERN.match("ACME-T/SHIRT-4821")
    assert not SKU_PATTERN.match("4821")


def test_parse_sku_without_numeric_suffix():
    assert parse_sku("ACME-TEE") == (["ACME", "TEE"], None)
    assert parse_sku("") == ([], None)


def test_row_sku_parts_adds_color_and_value_markers():
    assert row_sku_parts(["acme", "", "tee"], 4, 12) == ["acme", "tee", "C4", "V12"]


def test_slugify():
    assert slugify("  Hello, World!  Tee ") == "hello-world-tee"
    assert slugify("a -- b") == "a-b"
    assert slugify("") == ""
