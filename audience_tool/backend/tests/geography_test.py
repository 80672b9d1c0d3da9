import pytest
from geography import (
    BUILTIN_PROFILES,
    CANADA_PROFILE,
    GENERIC_PROFILE_ID,
    INDIA_PROFILE,
    US_PROFILE,
    codes_for_regions,
    detect,
    generic_profile,
    get_profile,
    location_name,
    region_for_code,
    resolve_code,
    score_profile,
)


def test_score_profile_counts_codes_and_names():
    sample = ["CA", "California", "NY", "Ontario"]
    assert score_profile(sample, US_PROFILE) == pytest.approx(0.75)
    assert score_profile(sample, CANADA_PROFILE) == pytest.approx(0.25)


def test_detect_prefers_highest_score():
    assert detect(["CA", "California", "NY", "Ontario"]).id == "US"
    assert detect(["Ontario", "Quebec", "BC", "AB"]).id == "CA"
    assert detect(["Maharashtra", "Karnataka", "Delhi", "KA"]).id == "IN"


def test_detect_tie_goes_to_first_registered_profile():
    # GA is Georgia (US), Goa (IN) and Gabon (WORLD)
    assert detect(["GA", "ga"]).id == "US"
    assert detect(["GA"], profiles=(INDIA_PROFILE, US_PROFILE)).id == "IN"


def test_detect_threshold_is_strict():
    # 3 of 10 values match: exactly 0.3 is not enough
    sample = ["TX", "NY", "CA"] + [f"zone {i}" for i in range(7)]
    profile = detect(sample)
    assert profile.id == GENERIC_PROFILE_ID


def test_detect_falls_back_to_generic_identity_profile():
    profile = detect(["Mars", "Venus", "Mars", None, ""])
    assert profile.is_generic
    assert profile.regions == {}
    assert resolve_code("Mars", profile) == "Mars"
    assert resolve_code(" venus ", profile) == "Venus"
    assert resolve_code("Jupiter", profile) == "Jupiter"


def test_detect_empty_sample():
    assert detect([]).is_generic
    assert detect([None, "  ", float("nan")]).is_generic


def test_detect_only_scores_first_200_values():
    sample = ["Texas"] * 200 + ["Ontario"] * 1000
    assert detect(sample).id == "US"


def test_resolve_code_uses_codes_then_names():
    assert resolve_code("ca", US_PROFILE) == "CA"
    assert resolve_code("  New York ", US_PROFILE) == "NY"
    assert resolve_code("NEW JERSEY", US_PROFILE) == "NJ"
    assert resolve_code("Ontario", US_PROFILE) is None
    assert resolve_code(None, US_PROFILE) is None
    assert resolve_code(float("nan"), US_PROFILE) is None
    assert resolve_code("", US_PROFILE) is None


def test_resolve_code_generic_integral_floats():
    profile = generic_profile(["12", "7"])
    assert resolve_code(12.0, profile) == "12"
    assert resolve_code(resolve_code(12.0, profile), profile) == "12"


def test_region_helpers():
    assert region_for_code("CA", US_PROFILE) == "West"
    assert region_for_code("ZZ", US_PROFILE) is None
    assert region_for_code(None, US_PROFILE) is None
    # MP is listed under West and Central; the first region wins
    assert region_for_code("MP", INDIA_PROFILE) == "West"

    codes = codes_for_regions(["West", "Central"], INDIA_PROFILE)
    assert codes == ["GA", "GJ", "MH", "MP", "CT", "DD"]
    assert codes_for_regions(["Nowhere"], US_PROFILE) == []


def test_location_name_and_lookup():
    assert location_name("TX", US_PROFILE) == "Texas"
    assert location_name("??", US_PROFILE) == "??"
    assert get_profile("ca") is CANADA_PROFILE
    assert get_profile("XX") is None
    assert [profile.id for profile in BUILTIN_PROFILES] == ["US", "IN", "GB", "CA", "WORLD"]


def test_profiles_are_read_only():
    with pytest.raises(TypeError):
        US_PROFILE.location_map["ZZ"] = "Nowhere"
    with pytest.raises(AttributeError):
        US_PROFILE.id = "XX"
