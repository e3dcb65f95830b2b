"""Bio-data encoding for MuzzlePrint

Categorical registration attributes (breed, location, age, sex, colour/markings)
are encoded as a 5-value vector of normalized category indices. The matcher uses
it as an auxiliary signal next to the muzzle feature vector.

Each table keeps its selection placeholder at index 0 so indices stay stable
for records enrolled from the registration form.
"""

from __future__ import annotations
from typing import Sequence, Tuple
import numpy as np

BREEDS: Tuple[str, ...] = (
    "Select Breed",
    "Boran", "Zebu", "Ankole", "Aberdeen Angus", "Hereford", "Charolais",
    "Limousin", "Simmental", "Sahiwal", "Gyr", "Ayrshire", "Friesian",
    "Jersey", "Guernsey", "Holstein", "Dexter", "Highland", "Belgian Blue",
    "Wagyu", "Other",
)

# Kenyan counties and regions, in registration-form order. Repeated counties
# resolve to their first position; the table length sets the normalization.
LOCATIONS: Tuple[str, ...] = (
    "Select Location",
    "Turkana", "West Pokot", "Kajiado", "Narok", "Samburu", "Isiolo",
    "Marsabit", "Wajir", "Garissa", "Mandera", "Baringo", "Laikipia",
    "Nakuru", "Uasin Gishu", "Trans Nzoia", "Elgeyo Marakwet", "Nandi",
    "Bomet", "Kericho", "Bomet", "Nandi", "Kakamega", "Vihiga", "Bungoma",
    "Busia", "Siaya", "Kisumu", "Homa Bay", "Migori", "Kisii", "Nyamira",
    "Nairobi", "Kiambu", "Murang'a", "Nyeri", "Kirinyaga", "Embu",
    "Tharaka Nithi", "Meru", "Isiolo", "Machakos", "Makueni", "Kitui",
    "Kilifi", "Kwale", "Mombasa", "Taita Taveta", "Lamu", "Tana River",
    "Other",
)

AGES: Tuple[str, ...] = (
    "Select Age",
    "Calf (0-6 months)", "Weaner (6-12 months)", "Yearling (1-2 years)",
    "2 years", "3 years", "4 years", "5 years", "6 years", "7 years",
    "8 years", "9 years", "10 years", "11 years", "12 years", "13+ years",
)

SEXES: Tuple[str, ...] = (
    "Select Sex",
    "Female (Cow/Heifer)", "Male (Bull/Steer)", "Female (Cow)",
    "Female (Heifer)", "Male (Bull)", "Male (Steer)", "Calf (Unknown)",
)

COLORS: Tuple[str, ...] = (
    "Select Color/Markings",
    "Solid Black", "Solid Brown", "Solid Red", "Solid White",
    "Black and White (Piebald)", "Brown and White", "Red and White",
    "Black with White Face", "Brown with White Face", "Spotted/Speckled",
    "Brindle", "Roan (Red)", "Roan (Blue)", "Dun", "Gray", "Yellow/Tan",
    "Belted (Dutch Belt)", "Lineback", "Other",
)

CATEGORY_TABLES = {
    "breed": BREEDS,
    "location": LOCATIONS,
    "age": AGES,
    "sex": SEXES,
    "color": COLORS,
}

BIO_DATA_DIM = len(CATEGORY_TABLES)


def category_score(field: str, value: str) -> float:
    """Normalized index of a category value: index / len(table).

    Raises:
        ValueError: If the field is unknown, or the value is missing or the placeholder
    """
    try:
        table = CATEGORY_TABLES[field]
    except KeyError:
        raise ValueError(f"Unknown bio-data field '{field}'") from None

    if value not in table or table.index(value) == 0:
        raise ValueError(f"Please select a valid {field} (got {value!r})")

    return table.index(value) / float(len(table))


def create_bio_data_vector(breed: str, location: str, age: str, sex: str, color: str) -> np.ndarray:
    """Encode registration attributes as the 5-D bio-data vector.

    Returns:
        float64 array ordered (breed, location, age, sex, color), values in [0, 1)
    """
    values = {"breed": breed, "location": location, "age": age, "sex": sex, "color": color}
    return np.asarray([category_score(field, values[field]) for field in CATEGORY_TABLES], dtype=np.float64)


def bio_data_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Averaged per-category agreement 100 * mean(1 - |a - b|), in [0, 100].

    Returns 0.0 for empty or unequal-length vectors.
    """
    vec_a = np.asarray(a, dtype=np.float64).reshape(-1)
    vec_b = np.asarray(b, dtype=np.float64).reshape(-1)
    if vec_a.size == 0 or vec_a.shape != vec_b.shape:
        return 0.0
    agreement = 1.0 - np.abs(vec_a - vec_b)
    return float(np.clip(agreement.mean() * 100.0, 0.0, 100.0))
