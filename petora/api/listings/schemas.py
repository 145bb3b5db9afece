# petora/api/listings/schemas.py
from typing import Any, Dict, List, Optional, Tuple

from marshmallow import Schema, fields, validate, validates_schema, pre_load, ValidationError, EXCLUDE

from petora.models.listing import Species, Gender, ListingType, OWNER_LISTING_TYPES

SPECIES_VALUES = [e.value for e in Species]
GENDER_VALUES = [e.value for e in Gender]
OWNER_LISTING_TYPE_VALUES = [e.value for e in OWNER_LISTING_TYPES]

# fields an update may not blank out; sending "" or null for them means "leave as is"
REQUIRED_LISTING_FIELDS = ('name', 'type', 'breed', 'age', 'gender', 'location', 'listing_type', 'description', 'image_url')


def validate_price_coupling(listing_type: Optional[str], price: Optional[float]):
    """A price is present exactly when the listing is a Sale."""
    if listing_type == ListingType.SALE.value and price is None:
        raise ValidationError({"price": ["Price is required for Sale listings."]})
    if listing_type != ListingType.SALE.value and price is not None:
        raise ValidationError({"price": ["Price is only allowed for Sale listings."]})


def drop_blank_form_values(form: Dict[str, Any]) -> Dict[str, Any]:
    """Multipart forms send unfilled inputs as ''; treat them as not sent."""
    return {k: v for k, v in form.items() if not (isinstance(v, str) and v.strip() == "")}


def split_cleared_fields(payload: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """
    Separates required fields sent as ''/null from the rest of an update payload.
    Those are kept unchanged and reported back as ``ignored_fields``.
    ``price: null`` is an explicit clear and stays in the payload.
    """
    if not isinstance(payload, dict):
        return payload, []
    kept, ignored = {}, []
    for key, value in payload.items():
        blank = value is None or (isinstance(value, str) and value.strip() == "")
        if blank and (key in REQUIRED_LISTING_FIELDS or (key == 'price' and value is not None)):
            ignored.append(key)
        else:
            kept[key] = value
    return kept, ignored


class _StripStringsMixin:
    @pre_load
    def strip_strings(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}


class ListingCreateSchema(_StripStringsMixin, Schema):
    """POST /api/pets body (multipart form or JSON)."""
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(required=True, validate=validate.Length(min=2, max=50, error="Pet name must be 2-50 characters."))
    species = fields.Str(required=True, data_key="type", validate=validate.OneOf(SPECIES_VALUES))
    breed = fields.Str(required=True, validate=validate.Length(min=2, max=50, error="Breed must be 2-50 characters."))
    age = fields.Str(required=True, validate=validate.Length(min=1, max=30, error="Age is required."))
    gender = fields.Str(required=True, validate=validate.OneOf(GENDER_VALUES))
    location = fields.Str(required=True, validate=validate.Length(min=1, max=100, error="Location is required."))
    listing_type = fields.Str(required=True, validate=validate.OneOf(OWNER_LISTING_TYPE_VALUES))
    price = fields.Float(allow_none=True, validate=validate.Range(min=0, error="Price must be a non-negative number."))
    description = fields.Str(required=True, validate=validate.Length(min=10, max=500, error="Description must be 10-500 characters."))

    @validates_schema
    def check_price(self, data, **kwargs):
        if 'listing_type' in data:
            validate_price_coupling(data['listing_type'], data.get('price'))


class ListingUpdateSchema(_StripStringsMixin, Schema):
    """PUT/PATCH /api/pets/<id> body. Every field is optional; ownership fields are ignored."""
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(validate=validate.Length(min=2, max=50))
    species = fields.Str(data_key="type", validate=validate.OneOf(SPECIES_VALUES))
    breed = fields.Str(validate=validate.Length(min=2, max=50))
    age = fields.Str(validate=validate.Length(min=1, max=30))
    gender = fields.Str(validate=validate.OneOf(GENDER_VALUES))
    location = fields.Str(validate=validate.Length(min=1, max=100))
    listing_type = fields.Str(validate=validate.OneOf(OWNER_LISTING_TYPE_VALUES))
    price = fields.Float(allow_none=True, validate=validate.Range(min=0))
    description = fields.Str(validate=validate.Length(min=10, max=500))
    image_url = fields.Str(validate=validate.Length(min=1, max=500))


class StrayReportSchema(_StripStringsMixin, Schema):
    """POST /api/strays body. Unknown details fall back to fixed stray defaults."""
    class Meta:
        unknown = EXCLUDE

    location = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    description = fields.Str(required=True, validate=validate.Length(min=1, max=500))
    reporter_contact = fields.Str(allow_none=True, validate=validate.Length(max=100))
    species = fields.Str(data_key="type", validate=validate.OneOf(SPECIES_VALUES))


class ListingResponseSchema(Schema):
    listing_id = fields.Str(dump_only=True, data_key="id")
    name = fields.Str()
    species = fields.Str(data_key="type")
    breed = fields.Str()
    age = fields.Str()
    gender = fields.Str()
    location = fields.Str()
    listing_type = fields.Str()
    price = fields.Float(allow_none=True)
    description = fields.Str()
    image_url = fields.Str()
    owner_id = fields.Str(allow_none=True)
    reporter_contact = fields.Str(allow_none=True)
    created_at = fields.DateTime(allow_none=True)


class ListingDetailResponseSchema(ListingResponseSchema):
    """Single listing view; owner contact is null when the owner cannot be resolved."""
    owner_email = fields.Str(allow_none=True)
    owner_name = fields.Str(allow_none=True)
    ignored_fields = fields.List(fields.Str(), dump_only=True)


class ListingFilterSchema(Schema):
    """Query string of GET /api/pets."""
    class Meta:
        unknown = EXCLUDE

    q = fields.Str(load_default=None)
    species = fields.Str(data_key="type", load_default=None, validate=validate.OneOf(SPECIES_VALUES + ['all']))
    listing_type = fields.Str(load_default=None, validate=validate.OneOf([e.value for e in ListingType] + ['all']))
