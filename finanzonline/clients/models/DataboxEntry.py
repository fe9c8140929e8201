"""DataBox models: one listed document and the listing filter."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

FileArt = Literal["PDF", "XML"]
ReadStatus = Literal["READ", "UNREAD"]


class DataboxEntry(BaseModel):
    """
    Represents a single document in the DataBox, as returned by getDatabox.

    Entries are immutable once parsed; applkey is the only value needed to
    download the document content.
    """
    model_config = ConfigDict(frozen=True)

    stnr: str = ""
    name: str = ""
    anbringen: str = ""
    zrvon: str = ""
    zrbis: str = ""
    datbesch: datetime
    erltyp: str = ""
    fileart: FileArt = "PDF"
    ts_zust: datetime
    applkey: str = ""
    filebez: str = ""
    status: ReadStatus = "UNREAD"


class DataboxListRequest(BaseModel):
    """
    Optional filters for listing the DataBox.

    Attributes:
        erltyp (str | None): Document type code (e.g. B, M, I, P, EU).
        ts_zust_von (datetime | None): Start of the delivery window.
        ts_zust_bis (datetime | None): End of the delivery window.
    """
    erltyp: str | None = None
    ts_zust_von: datetime | None = None
    ts_zust_bis: datetime | None = None
