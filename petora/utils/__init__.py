from .datetime_utils import utc_now, as_utc, to_iso_z, for_firestore, from_firestore

__all__ = ['utc_now', 'as_utc', 'to_iso_z', 'for_firestore', 'from_firestore']
