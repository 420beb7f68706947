from intake.location.zip_lookup import Location, enrich_location, lookup_zip

__all__ = ["Location", "enrich_location", "lookup_zip"]
