"""
Geography profiles and location resolution.
Holds the built-in taxonomies (US states, Indian states, UK nations, Canadian
provinces, world countries), detects which one a location column uses, and
resolves raw values to canonical codes.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping


# Minimum match rate a profile must exceed to be selected
DETECTION_THRESHOLD = 0.3

# Number of non-empty values inspected during detection
DETECTION_SAMPLE_SIZE = 200

GENERIC_PROFILE_ID = "GENERIC"

# String forms of missing values produced by spreadsheet readers
_MISSING_TOKENS = {"nan", "<na>", "nat"}


# ============================================================================
# Profile Type
# ============================================================================

@dataclass(frozen=True)
class GeographyProfile:
    """A closed taxonomy of location codes grouped into named regions."""
    id: str
    display_name: str
    location_label: str
    region_label: str
    location_map: Mapping[str, str]
    regions: Mapping[str, tuple[str, ...]]
    map_type: str = "none"
    name_to_code: Mapping[str, str] = field(default=None)  # derived when omitted

    def __post_init__(self):
        location_map = MappingProxyType(dict(self.location_map))
        object.__setattr__(self, "location_map", location_map)
        object.__setattr__(
            self,
            "regions",
            MappingProxyType({name: tuple(codes) for name, codes in self.regions.items()}),
        )
        if self.name_to_code is None:
            name_to_code = build_name_to_code(location_map)
        else:
            name_to_code = dict(self.name_to_code)
        object.__setattr__(self, "name_to_code", MappingProxyType(name_to_code))

    @property
    def is_generic(self) -> bool:
        return self.id == GENERIC_PROFILE_ID


def build_name_to_code(location_map: Mapping[str, str]) -> dict[str, str]:
    """Invert a code -> display name map into lowercase name -> code."""
    return {name.lower(): code for code, name in location_map.items()}


# ============================================================================
# US States
# ============================================================================

US_LOCATION_MAP = {
    'AL': 'Alabama', 'AK': 'Alaska', 'AZ': 'Arizona', 'AR': 'Arkansas',
    'CA': 'California', 'CO': 'Colorado', 'CT': 'Connecticut', 'DE': 'Delaware',
    'FL': 'Florida', 'GA': 'Georgia', 'HI': 'Hawaii', 'ID': 'Idaho',
    'IL': 'Illinois', 'IN': 'Indiana', 'IA': 'Iowa', 'KS': 'Kansas',
    'KY': 'Kentucky', 'LA': 'Louisiana', 'ME': 'Maine', 'MD': 'Maryland',
    'MA': 'Massachusetts', 'MI': 'Michigan', 'MN': 'Minnesota', 'MS': 'Mississippi',
    'MO': 'Missouri', 'MT': 'Montana', 'NE': 'Nebraska', 'NV': 'Nevada',
    'NH': 'New Hampshire', 'NJ': 'New Jersey', 'NM': 'New Mexico', 'NY': 'New York',
    'NC': 'North Carolina', 'ND': 'North Dakota', 'OH': 'Ohio', 'OK': 'Oklahoma',
    'OR': 'Oregon', 'PA': 'Pennsylvania', 'RI': 'Rhode Island', 'SC': 'South Carolina',
    'SD': 'South Dakota', 'TN': 'Tennessee', 'TX': 'Texas', 'UT': 'Utah',
    'VT': 'Vermont', 'VA': 'Virginia', 'WA': 'Washington', 'WV': 'West Virginia',
    'WI': 'Wisconsin', 'WY': 'Wyoming', 'DC': 'District of Columbia',
}

# US Census regions
US_REGIONS = {
    'Northeast': ['CT', 'ME', 'MA', 'NH', 'RI', 'VT', 'NJ', 'NY', 'PA'],
    'Midwest': ['IL', 'IN', 'MI', 'OH', 'WI', 'IA', 'KS', 'MN', 'MO', 'NE', 'ND', 'SD'],
    'South': ['DE', 'FL', 'GA', 'MD', 'NC', 'SC', 'VA', 'DC', 'WV', 'AL', 'KY', 'MS',
              'TN', 'AR', 'LA', 'OK', 'TX'],
    'West': ['AZ', 'CO', 'ID', 'MT', 'NV', 'NM', 'UT', 'WY', 'AK', 'CA', 'HI', 'OR', 'WA'],
}


# ============================================================================
# India
# ============================================================================

INDIA_LOCATION_MAP = {
    'AN': 'Andaman and Nicobar Islands', 'AP': 'Andhra Pradesh', 'AR': 'Arunachal Pradesh',
    'AS': 'Assam', 'BR': 'Bihar', 'CH': 'Chandigarh', 'CT': 'Chhattisgarh',
    'DD': 'Dadra and Nagar Haveli and Daman and Diu', 'DL': 'Delhi', 'GA': 'Goa',
    'GJ': 'Gujarat', 'HR': 'Haryana', 'HP': 'Himachal Pradesh', 'JK': 'Jammu and Kashmir',
    'JH': 'Jharkhand', 'KA': 'Karnataka', 'KL': 'Kerala', 'LA': 'Ladakh',
    'LD': 'Lakshadweep', 'MP': 'Madhya Pradesh', 'MH': 'Maharashtra', 'MN': 'Manipur',
    'ML': 'Meghalaya', 'MZ': 'Mizoram', 'NL': 'Nagaland', 'OR': 'Odisha',
    'PY': 'Puducherry', 'PB': 'Punjab', 'RJ': 'Rajasthan', 'SK': 'Sikkim',
    'TN': 'Tamil Nadu', 'TG': 'Telangana', 'TR': 'Tripura', 'UP': 'Uttar Pradesh',
    'UK': 'Uttarakhand', 'WB': 'West Bengal',
}

# MP and CT are listed under both West and Central; lookups return the first region
INDIA_REGIONS = {
    'North': ['DL', 'HR', 'HP', 'JK', 'PB', 'RJ', 'UP', 'UK', 'CH', 'LA'],
    'South': ['AP', 'KA', 'KL', 'TN', 'TG', 'PY', 'AN', 'LD'],
    'East': ['BR', 'JH', 'OR', 'WB'],
    'West': ['GA', 'GJ', 'MH', 'MP', 'CT', 'DD'],
    'Central': ['MP', 'CT'],
    'Northeast': ['AR', 'AS', 'MN', 'ML', 'MZ', 'NL', 'SK', 'TR'],
}


# ============================================================================
# United Kingdom
# ============================================================================

UK_LOCATION_MAP = {
    'ENG': 'England', 'SCT': 'Scotland', 'WLS': 'Wales', 'NIR': 'Northern Ireland',
}

UK_REGIONS = {
    'England': ['ENG'],
    'Scotland': ['SCT'],
    'Wales': ['WLS'],
    'Northern Ireland': ['NIR'],
}


# ============================================================================
# Canada
# ============================================================================

CANADA_LOCATION_MAP = {
    'AB': 'Alberta', 'BC': 'British Columbia', 'MB': 'Manitoba',
    'NB': 'New Brunswick', 'NL': 'Newfoundland and Labrador', 'NS': 'Nova Scotia',
    'NT': 'Northwest Territories', 'NU': 'Nunavut', 'ON': 'Ontario',
    'PE': 'Prince Edward Island', 'QC': 'Quebec', 'SK': 'Saskatchewan', 'YT': 'Yukon',
}

CANADA_REGIONS = {
    'Atlantic': ['NB', 'NL', 'NS', 'PE'],
    'Central': ['ON', 'QC'],
    'Prairies': ['AB', 'MB', 'SK'],
    'West Coast': ['BC'],
    'North': ['NT', 'NU', 'YT'],
}


# ============================================================================
# World (Countries)
# ============================================================================

WORLD_LOCATION_MAP = {
    # North America
    'US': 'United States', 'CA': 'Canada', 'MX': 'Mexico', 'GT': 'Guatemala', 'CU': 'Cuba',
    'HT': 'Haiti', 'DO': 'Dominican Republic', 'HN': 'Honduras', 'NI': 'Nicaragua',
    'CR': 'Costa Rica', 'PA': 'Panama', 'JM': 'Jamaica', 'TT': 'Trinidad and Tobago',
    # Europe
    'GB': 'United Kingdom', 'FR': 'France', 'DE': 'Germany', 'IT': 'Italy', 'ES': 'Spain',
    'PT': 'Portugal', 'NL': 'Netherlands', 'BE': 'Belgium', 'CH': 'Switzerland',
    'AT': 'Austria', 'SE': 'Sweden', 'NO': 'Norway', 'DK': 'Denmark', 'FI': 'Finland',
    'IE': 'Ireland', 'PL': 'Poland', 'CZ': 'Czech Republic', 'RO': 'Romania',
    'GR': 'Greece', 'HU': 'Hungary', 'SK': 'Slovakia', 'BG': 'Bulgaria',
    'HR': 'Croatia', 'RS': 'Serbia', 'UA': 'Ukraine', 'RU': 'Russia',
    'LT': 'Lithuania', 'LV': 'Latvia', 'EE': 'Estonia', 'SI': 'Slovenia',
    'BA': 'Bosnia and Herzegovina', 'MK': 'North Macedonia', 'AL': 'Albania',
    'ME': 'Montenegro', 'MD': 'Moldova', 'BY': 'Belarus', 'IS': 'Iceland', 'LU': 'Luxembourg',
    'MT': 'Malta', 'CY': 'Cyprus',
    # Asia
    'IN': 'India', 'CN': 'China', 'JP': 'Japan', 'KR': 'South Korea', 'KP': 'North Korea',
    'ID': 'Indonesia', 'TH': 'Thailand', 'VN': 'Vietnam', 'PH': 'Philippines',
    'MY': 'Malaysia', 'SG': 'Singapore', 'TW': 'Taiwan', 'BD': 'Bangladesh',
    'PK': 'Pakistan', 'LK': 'Sri Lanka', 'NP': 'Nepal', 'MM': 'Myanmar',
    'KH': 'Cambodia', 'LA': 'Laos', 'MN': 'Mongolia', 'AF': 'Afghanistan',
    'UZ': 'Uzbekistan', 'KZ': 'Kazakhstan', 'TM': 'Turkmenistan', 'KG': 'Kyrgyzstan',
    'TJ': 'Tajikistan', 'BN': 'Brunei',
    # Oceania
    'AU': 'Australia', 'NZ': 'New Zealand', 'PG': 'Papua New Guinea', 'FJ': 'Fiji',
    # South America
    'BR': 'Brazil', 'AR': 'Argentina', 'CL': 'Chile', 'CO': 'Colombia',
    'PE': 'Peru', 'VE': 'Venezuela', 'EC': 'Ecuador', 'UY': 'Uruguay',
    'PY': 'Paraguay', 'BO': 'Bolivia', 'GY': 'Guyana', 'SR': 'Suriname',
    # Africa
    'ZA': 'South Africa', 'NG': 'Nigeria', 'KE': 'Kenya', 'EG': 'Egypt',
    'GH': 'Ghana', 'ET': 'Ethiopia', 'TZ': 'Tanzania', 'MA': 'Morocco',
    'DZ': 'Algeria', 'TN': 'Tunisia', 'LY': 'Libya', 'SD': 'Sudan',
    'AO': 'Angola', 'MZ': 'Mozambique', 'MG': 'Madagascar', 'CM': 'Cameroon',
    'CI': "Côte d'Ivoire", 'NE': 'Niger', 'BF': 'Burkina Faso', 'ML': 'Mali',
    'SN': 'Senegal', 'ZW': 'Zimbabwe', 'ZM': 'Zambia', 'MW': 'Malawi',
    'RW': 'Rwanda', 'UG': 'Uganda', 'CD': 'Congo', 'CG': 'Republic of Congo',
    'BW': 'Botswana', 'NA': 'Namibia', 'LS': 'Lesotho', 'SZ': 'Eswatini',
    'GM': 'Gambia', 'GN': 'Guinea', 'SL': 'Sierra Leone', 'LR': 'Liberia',
    'TG': 'Togo', 'BJ': 'Benin', 'MR': 'Mauritania', 'ER': 'Eritrea',
    'DJ': 'Djibouti', 'SO': 'Somalia', 'SS': 'South Sudan', 'CF': 'Central African Republic',
    'TD': 'Chad', 'GA': 'Gabon', 'GQ': 'Equatorial Guinea', 'MU': 'Mauritius',
    # Middle East
    'AE': 'United Arab Emirates', 'SA': 'Saudi Arabia', 'IL': 'Israel',
    'TR': 'Turkey', 'QA': 'Qatar', 'KW': 'Kuwait', 'BH': 'Bahrain',
    'OM': 'Oman', 'JO': 'Jordan', 'LB': 'Lebanon', 'IQ': 'Iraq', 'IR': 'Iran',
    'YE': 'Yemen', 'SY': 'Syria', 'PS': 'Palestine', 'GE': 'Georgia', 'AM': 'Armenia',
    'AZ': 'Azerbaijan',
}

WORLD_REGIONS = {
    'North America': ['US', 'CA', 'MX', 'GT', 'CU', 'HT', 'DO', 'HN', 'NI', 'CR', 'PA', 'JM', 'TT'],
    'Europe': ['GB', 'FR', 'DE', 'IT', 'ES', 'PT', 'NL', 'BE', 'CH', 'AT', 'SE', 'NO', 'DK',
               'FI', 'IE', 'PL', 'CZ', 'RO', 'GR', 'HU', 'SK', 'BG', 'HR', 'RS', 'UA', 'RU',
               'LT', 'LV', 'EE', 'SI', 'BA', 'MK', 'AL', 'ME', 'MD', 'BY', 'IS', 'LU', 'MT', 'CY'],
    'Asia': ['IN', 'CN', 'JP', 'KR', 'KP', 'ID', 'TH', 'VN', 'PH', 'MY', 'SG', 'TW', 'BD',
             'PK', 'LK', 'NP', 'MM', 'KH', 'LA', 'MN', 'AF', 'UZ', 'KZ', 'TM', 'KG', 'TJ', 'BN'],
    'Oceania': ['AU', 'NZ', 'PG', 'FJ'],
    'South America': ['BR', 'AR', 'CL', 'CO', 'PE', 'VE', 'EC', 'UY', 'PY', 'BO', 'GY', 'SR'],
    'Africa': ['ZA', 'NG', 'KE', 'EG', 'GH', 'ET', 'TZ', 'MA', 'DZ', 'TN', 'LY', 'SD', 'AO',
               'MZ', 'MG', 'CM', 'CI', 'NE', 'BF', 'ML', 'SN', 'ZW', 'ZM', 'MW', 'RW', 'UG',
               'CD', 'CG', 'BW', 'NA', 'LS', 'SZ', 'GM', 'GN', 'SL', 'LR', 'TG', 'BJ', 'MR',
               'ER', 'DJ', 'SO', 'SS', 'CF', 'TD', 'GA', 'GQ', 'MU'],
    'Middle East': ['AE', 'SA', 'IL', 'TR', 'QA', 'KW', 'BH', 'OM', 'JO', 'LB', 'IQ', 'IR',
                    'YE', 'SY', 'PS', 'GE', 'AM', 'AZ'],
}


# ============================================================================
# Built-in Registry
# ============================================================================

US_PROFILE = GeographyProfile(
    id="US",
    display_name="United States",
    location_label="States",
    region_label="Regions",
    location_map=US_LOCATION_MAP,
    regions=US_REGIONS,
    map_type="usa",
)

INDIA_PROFILE = GeographyProfile(
    id="IN",
    display_name="India",
    location_label="States",
    region_label="Zones",
    location_map=INDIA_LOCATION_MAP,
    regions=INDIA_REGIONS,
    map_type="world",
)

UK_PROFILE = GeographyProfile(
    id="GB",
    display_name="United Kingdom",
    location_label="Nations",
    region_label="Nations",
    location_map=UK_LOCATION_MAP,
    regions=UK_REGIONS,
    map_type="world",
)

CANADA_PROFILE = GeographyProfile(
    id="CA",
    display_name="Canada",
    location_label="Provinces",
    region_label="Regions",
    location_map=CANADA_LOCATION_MAP,
    regions=CANADA_REGIONS,
    map_type="world",
)

WORLD_PROFILE = GeographyProfile(
    id="WORLD",
    display_name="World",
    location_label="Countries",
    region_label="Continents",
    location_map=WORLD_LOCATION_MAP,
    regions=WORLD_REGIONS,
    map_type="world",
)

# Registration order is the detection tie-break: earlier profiles win ties
BUILTIN_PROFILES: tuple[GeographyProfile, ...] = (
    US_PROFILE,
    INDIA_PROFILE,
    UK_PROFILE,
    CANADA_PROFILE,
    WORLD_PROFILE,
)


def get_profile(
    profile_id: str,
    profiles: Iterable[GeographyProfile] = BUILTIN_PROFILES,
) -> GeographyProfile | None:
    """Look up a registered profile by id (case-insensitive)."""
    wanted = str(profile_id).strip().upper()
    for profile in profiles:
        if profile.id.upper() == wanted:
            return profile
    return None


def generic_profile(values: Iterable[str] = ()) -> GeographyProfile:
    """
    Build an identity profile from observed values.
    Every distinct value maps to itself; there are no regions.
    """
    location_map: dict[str, str] = {}
    for value in values:
        location_map.setdefault(value, value)
    return GeographyProfile(
        id=GENERIC_PROFILE_ID,
        display_name="Generic",
        location_label="Locations",
        region_label="Groups",
        location_map=location_map,
        regions={},
        map_type="none",
        name_to_code={value.lower(): value for value in location_map},
    )


# ============================================================================
# Detection
# ============================================================================

def _clean_values(values: Iterable[object], limit: int | None = None) -> list[str]:
    cleaned = []
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if not text or text.lower() in _MISSING_TOKENS:
            continue
        cleaned.append(text)
        if limit is not None and len(cleaned) >= limit:
            break
    return cleaned


def value_matches_profile(value: str, profile: GeographyProfile) -> bool:
    """True if the value is a known code or a known display name of the profile."""
    return value.upper() in profile.location_map or value.lower() in profile.name_to_code


def score_profile(values: Iterable[object], profile: GeographyProfile) -> float:
    """
    Fraction of non-empty values recognized by the profile.

    Args:
        values: Raw location values
        profile: Profile to score against

    Returns:
        Match rate between 0 and 1 (0 for an empty sample)
    """
    cleaned = _clean_values(values)
    if not cleaned:
        return 0.0
    matches = sum(1 for value in cleaned if value_matches_profile(value, profile))
    return matches / len(cleaned)


def best_profile_score(
    values: Iterable[object],
    profiles: Iterable[GeographyProfile] = BUILTIN_PROFILES,
) -> float:
    """Highest match rate of the values against any of the profiles."""
    cleaned = _clean_values(values)
    return max((score_profile(cleaned, profile) for profile in profiles), default=0.0)


def detect(
    values: Iterable[object],
    profiles: Iterable[GeographyProfile] = BUILTIN_PROFILES,
) -> GeographyProfile:
    """
    Select the geography profile that best matches a location column.

    Only the first 200 non-empty values are scored. The winning profile must
    score strictly above the detection threshold; ties go to the profile
    registered first. When nothing qualifies, a generic identity profile is
    built from the observed values.
    """
    cleaned = _clean_values(values, limit=DETECTION_SAMPLE_SIZE)
    if not cleaned:
        return generic_profile()

    best: GeographyProfile | None = None
    best_score = DETECTION_THRESHOLD
    for profile in profiles:
        if profile.is_generic:
            continue
        score = score_profile(cleaned, profile)
        if score > best_score:
            best = profile
            best_score = score

    if best is None:
        return generic_profile(cleaned)
    return best


# ============================================================================
# Resolution Helpers
# ============================================================================

def resolve_code(value: object, profile: GeographyProfile) -> str | None:
    """Resolve a raw location value to a canonical code, or None if unrecognized."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        # Numeric codes read back from a float column, e.g. 12.0 -> "12"
        value = int(value)
    text = str(value).strip()
    if not text or text.lower() in _MISSING_TOKENS:
        return None

    upper = text.upper()
    if upper in profile.location_map:
        return upper
    lower = text.lower()
    if lower in profile.name_to_code:
        return profile.name_to_code[lower]
    if profile.is_generic:
        return text
    return None


def region_for_code(code: str | None, profile: GeographyProfile) -> str | None:
    """Return the first region containing the code."""
    if not code:
        return None
    for region, codes in profile.regions.items():
        if code in codes:
            return region
    return None


def codes_for_regions(region_names: Iterable[str], profile: GeographyProfile) -> list[str]:
    """Expand region names to their codes, preserving order without duplicates."""
    codes: list[str] = []
    seen: set[str] = set()
    for region in region_names:
        for code in profile.regions.get(region, ()):
            if code not in seen:
                seen.add(code)
                codes.append(code)
    return codes


def location_name(code: str, profile: GeographyProfile) -> str:
    return profile.location_map.get(code, code)
