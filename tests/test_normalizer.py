from datetime import datetime, timezone
from decimal import Decimal

from app.services.normalizer import normalize


def _types(result):
    return {e["field"]: e["type"] for e in result.errors}


def test_non_object_payload_is_reported():
    result = normalize(["not", "a", "dict"])
    assert result.payload == {}
    assert result.errors[0]["type"] == "dict_type"


def test_only_supplied_keys_are_returned():
    result = normalize({"name": "  Sunset Heights  ", "city": "Cape Town"})
    assert result.ok
    assert result.payload == {"name": "Sunset Heights", "city": "Cape Town"}


def test_blank_strings_become_none():
    result = normalize({"tagline": "   ", "suburb": ""})
    assert result.payload == {"tagline": None, "suburb": None}


def test_enum_synonyms_collapse_to_canonical_values():
    result = normalize({
        "developmentType": "Mixed-Use",
        "transactionType": "rent",
        "marketingStatus": "now-selling",
        "ownershipType": "freehold",
    })
    assert result.ok
    assert result.payload["development_type"] == "mixed_use"
    assert result.payload["transaction_type"] == "for_rent"
    assert result.payload["marketing_status"] == "selling"
    assert result.payload["ownership_type"] == "full_title"


def test_enum_given_as_list_takes_first_value():
    result = normalize({"developmentType": ["residential", "commercial"]})
    assert result.payload["development_type"] == "residential"


def test_unknown_enum_is_reported_and_dropped():
    result = normalize({"name": "Sunset Heights", "developmentType": "castle"})
    assert _types(result) == {"developmentType": "unknown_enum"}
    assert "development_type" not in result.payload
    assert result.payload["name"] == "Sunset Heights"
    assert "residential" in result.errors[0]["message"]


def test_ui_scratch_keys_are_ignored():
    result = normalize({"name": "X", "_ui": {"step": 3}, "tempId": "abc"})
    assert result.ok
    assert result.payload == {"name": "X"}


def test_arrays_accept_csv_and_json_strings():
    result = normalize({
        "amenities": "Pool, Gym ,Pool,",
        "highlights": '["Sea views", "Secure"]',
        "features": None,
    })
    assert result.payload["amenities"] == ["Pool", "Gym"]
    assert result.payload["highlights"] == ["Sea views", "Secure"]
    assert result.payload["features"] == []


def test_numeric_text_is_parsed():
    result = normalize({"monthlyLevyFrom": "1 250.50", "latitude": "-33.9"})
    assert result.payload["monthly_levy_from"] == Decimal("1250.50")
    assert result.payload["latitude"] == Decimal("-33.9")


def test_invalid_number_is_dropped_and_rest_kept():
    result = normalize({"name": "X", "ratesFrom": "cheap", "latitude": 200})
    assert set(_types(result)) == {"ratesFrom", "latitude"}
    assert result.payload == {"name": "X"}


def test_parent_range_order():
    result = normalize({"monthlyLevyFrom": 3000, "monthlyLevyTo": 2000})
    assert _types(result) == {"monthlyLevyTo": "range_order"}
    assert result.payload["monthly_levy_from"] == Decimal("3000")
    assert "monthly_levy_to" not in result.payload


def test_zero_upper_bound_is_not_a_range_error():
    result = normalize({"priceFrom": 900000, "priceTo": 0})
    assert result.ok


def test_unit_types_are_normalized_in_full():
    result = normalize({"unitTypes": [{"name": "2 Bed", "bedrooms": "2", "bathrooms": 1, "basePriceFrom": 1500000}]})
    assert result.ok
    (unit,) = result.payload["unit_types"]
    assert unit["name"] == "2 Bed"
    assert unit["bedrooms"] == 2
    assert unit["base_price_from"] == Decimal("1500000")
    assert unit["parking_kind"] == "none"
    assert unit["parking_bays"] == 0
    assert unit["is_active"] is True


def test_unit_types_absent_means_untouched():
    result = normalize({"name": "X"})
    assert "unit_types" not in result.payload


def test_unit_legacy_price_keys_are_accepted():
    result = normalize({"unitTypes": [{"priceFrom": "1 100 000", "priceTo": "1 300 000"}]})
    unit = result.payload["unit_types"][0]
    assert unit["base_price_from"] == Decimal("1100000")
    assert unit["base_price_to"] == Decimal("1300000")


def test_unit_legacy_parking_string():
    result = normalize({"unitTypes": [{"name": "A", "parking": "garage_2"}]})
    unit = result.payload["unit_types"][0]
    assert (unit["parking_kind"], unit["parking_bays"]) == ("garage", 2)


def test_structured_parking_wins_over_legacy_string():
    result = normalize({"unitTypes": [{"parkingKind": "carport", "parkingBays": 1, "parking": "garage_2"}]})
    unit = result.payload["unit_types"][0]
    assert (unit["parking_kind"], unit["parking_bays"]) == ("carport", 1)


def test_parking_consistency():
    result = normalize({"unitTypes": [
        {"parkingKind": "none", "parkingBays": 3, "garageLayout": "tandem"},
        {"parkingKind": "open", "garageLayout": "tandem"},
        {"parkingKind": "garage", "parkingBays": 2, "garageLayout": "double"},
    ]})
    none, open_, garage = result.payload["unit_types"]
    assert (none["parking_bays"], none["garage_layout"]) == (0, None)
    assert (open_["parking_bays"], open_["garage_layout"]) == (1, None)
    assert garage["garage_layout"] == "side_by_side"


def test_invalid_unit_field_reports_camel_case_path():
    result = normalize({"unitTypes": [{"name": "A"}, {"name": "B", "bedrooms": "many"}]})
    assert _types(result) == {"unitTypes.1.bedrooms": "int_parsing"}
    names = [u["name"] for u in result.payload["unit_types"]]
    assert names == ["A", "B"]
    assert result.payload["unit_types"][1]["bedrooms"] is None


def test_unit_range_and_auction_checks():
    start = datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
    result = normalize({"unitTypes": [{
        "basePriceFrom": 2_000_000,
        "basePriceTo": 1_000_000,
        "startingBid": 500_000,
        "reservePrice": 400_000,
        "auctionStartDate": start.isoformat(),
        "auctionEndDate": start.isoformat(),
    }]})
    assert _types(result) == {
        "unitTypes.0.basePriceTo": "range_order",
        "unitTypes.0.reservePrice": "range_order",
        "unitTypes.0.auctionEndDate": "date_order",
    }
    unit = result.payload["unit_types"][0]
    assert "base_price_to" not in unit
    assert "reserve_price" not in unit
    assert unit["auction_start_date"] == start


def test_naive_auction_dates_are_utc():
    result = normalize({"unitTypes": [{"auctionStartDate": "2026-03-01T10:00:00"}]})
    assert result.payload["unit_types"][0]["auction_start_date"].tzinfo is not None


def test_duplicate_unit_ids_are_reported_and_cleared():
    result = normalize({"unitTypes": [{"id": "unt_a", "name": "A"}, {"id": "unt_a", "name": "B"}]})
    assert _types(result) == {"unitTypes.1.id": "duplicate_id"}
    ids = [u["id"] for u in result.payload["unit_types"]]
    assert ids == ["unt_a", None]


def test_media_synonyms_and_invalid_url():
    result = normalize({"media": [
        {"url": "https://cdn.example.com/a.jpg", "category": "featured", "type": "photo"},
        {"url": "not a url"},
    ]})
    assert _types(result) == {"media.1.url": "url_parsing"}
    (item,) = result.payload["media"]
    assert item["category"] == "hero"
    assert item["type"] == "image"
    assert item["url"] == "https://cdn.example.com/a.jpg"


def test_normalize_is_deterministic_and_leaves_input_untouched():
    raw = {"name": "X", "amenities": "Pool,Gym", "developmentType": "plots"}
    assert normalize(raw).payload == normalize(dict(raw)).payload
    assert raw["amenities"] == "Pool,Gym"


def test_prices_beyond_money_precision_are_field_errors():
    result = normalize({
        "name": "Big",
        "priceFrom": "100000000000000",
        "unitTypes": [{"name": "A", "basePriceFrom": "1e30", "bathrooms": "150", "reservePrice": "10.555"}],
    })
    types = _types(result)
    assert set(types) == {
        "priceFrom",
        "unitTypes.0.basePriceFrom",
        "unitTypes.0.bathrooms",
        "unitTypes.0.reservePrice",
    }
    assert all(t.startswith("decimal_") for t in types.values())
    assert "price_from" not in result.payload
    unit = result.payload["unit_types"][0]
    assert (unit["name"], unit["base_price_from"], unit["bathrooms"], unit["reserve_price"]) == ("A", None, None, None)


def test_largest_storable_price_is_accepted():
    result = normalize({"unitTypes": [{"basePriceFrom": "9999999999999.99", "bathrooms": "99.5"}]})
    assert result.ok
    assert result.payload["unit_types"][0]["base_price_from"] == Decimal("9999999999999.99")
