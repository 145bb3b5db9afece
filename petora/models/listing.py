# petora/models/listing.py
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, Union

from marshmallow import missing


class Species(Enum):
    DOG = "Dog"
    CAT = "Cat"
    BIRD = "Bird"
    RABBIT = "Rabbit"
    OTHER = "Other"


class Gender(Enum):
    MALE = "Male"
    FEMALE = "Female"
    UNKNOWN = "Unknown"


class ListingType(Enum):
    ADOPTION = "Adoption"
    SALE = "Sale"
    FOSTER = "Foster"
    STRAY = "Stray"


# listing types an owner may pick; Stray is reserved for the public report path
OWNER_LISTING_TYPES = (ListingType.ADOPTION, ListingType.SALE, ListingType.FOSTER)

STRAY_DEFAULTS = {
    "name": "Found Stray",
    "species": Species.OTHER.value,
    "breed": "Unknown",
    "age": "Unknown",
    "gender": Gender.UNKNOWN.value,
}


@dataclass
class Listing:
    """
    Document structure of the Firestore 'pets' collection.
    ``price`` is set only when ``listing_type`` is Sale.
    """
    listing_id: str
    name: str
    species: str
    breed: str
    age: str
    gender: str
    location: str
    listing_type: str
    description: str
    image_url: str
    price: Optional[float] = None
    owner_id: Optional[str] = None
    reporter_contact: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_document(self) -> Dict[str, Any]:
        document = asdict(self)
        # created_at is stamped by the database
        document.pop('created_at', None)
        return document


@dataclass
class ListingPatch:
    """
    Partial update of a listing.

    Every field defaults to marshmallow's ``missing`` sentinel, which means
    "not supplied". ``None`` is an explicit clear and is only meaningful for
    ``price``.
    """
    name: Union[str, object] = missing
    species: Union[str, object] = missing
    breed: Union[str, object] = missing
    age: Union[str, object] = missing
    gender: Union[str, object] = missing
    location: Union[str, object] = missing
    listing_type: Union[str, object] = missing
    description: Union[str, object] = missing
    image_url: Union[str, object] = missing
    price: Union[float, None, object] = missing
    ignored_fields: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], ignored_fields=None) -> "ListingPatch":
        known = {f.name for f in fields(cls)} - {'ignored_fields'}
        values = {k: v for k, v in data.items() if k in known}
        return cls(ignored_fields=list(ignored_fields or []), **values)

    def changes(self) -> Dict[str, Any]:
        """Only the supplied fields, explicit ``None`` included."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != 'ignored_fields' and getattr(self, f.name) is not missing
        }
