from typing import Literal

from pydantic import BaseModel, Field, field_validator

from finanzonline.clients.models.Credentials import FinanzonlineCredentials


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter and where it is read from.

    Attributes:
        env_key (str): The key suffix of the environment variable, e.g. "TID" for FINANZONLINE__TID.
        field (str): The name of the FinanzonlineConfig field the value is stored in.
        val_type (str): The expected type of the value. Supported types are "string" and "number".
    """
    env_key: str
    field: str
    val_type: Literal["string", "number"] = "string"


class FinanzonlineConfig(FinanzonlineCredentials):
    """
    The fully resolved and validated configuration for a FinanzOnline run.

    The credential fields are inherited, so a config can be passed wherever
    credentials are expected.
    """
    tid: str = Field(pattern=r"^[0-9A-Za-z]{8,12}$")
    benid: str = Field(min_length=5, max_length=12)
    pin: str = Field(min_length=5, max_length=128)
    herstellerid: str = Field(pattern=r"^[0-9A-Za-z]{10,24}$")
    output_dir: str
    session_timeout: int = Field(default=30, gt=0)
    query_timeout: int = Field(default=30, gt=0)

    @field_validator("output_dir")
    @classmethod
    def _check_output_dir(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("output_dir must not be empty")
        return value

    def get_credentials(self) -> FinanzonlineCredentials:
        return FinanzonlineCredentials(tid=self.tid, benid=self.benid, pin=self.pin, herstellerid=self.herstellerid)
