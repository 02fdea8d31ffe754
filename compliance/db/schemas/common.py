from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, AliasChoices, Field

from compliance.utils.dates import as_utc

# Incoming naive datetimes are taken as UTC; outgoing values are always aware.
UtcDateTime = Annotated[datetime, AfterValidator(as_utc)]


def metadata_field():
    """Field that reads ``metadata_json`` from ORM rows and ``metadata`` from JSON input."""
    return Field(default=None, validation_alias=AliasChoices("metadata_json", "metadata"))
