"""API response and credential types for the DC/OS REST API.

Pydantic models representing the documents exchanged with the cluster.
Every field has a default where the API may omit it, so that an empty
document decodes to the zero value of its type.
"""

from typing import Any

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from pydantic import BaseModel, ConfigDict, Field


class ServiceAccount(BaseModel):
    """A machine identity authenticated with an RSA private key."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    account_id: str
    private_key: RSAPrivateKey


class AuthToken(BaseModel):
    """Opaque authentication token returned by the login endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str = Field(alias="token")


class ErrorBody(BaseModel):
    """Structured error document some endpoints return on failure."""

    title: str
    description: str = ""


class Slave(BaseModel):
    """A single agent node as listed in the cluster summary."""

    id: str
    hostname: str = ""
    pid: str = ""


class Summary(BaseModel):
    """Top-level cluster snapshot from the Mesos master."""

    cluster: str = ""
    slaves: list[Slave] = Field(default_factory=list)


class DataPoint(BaseModel):
    """A single measurement in a metrics document."""

    name: str
    value: float | int | None = None
    unit: str = ""
    tags: dict[str, str] = Field(default_factory=dict)


class Metrics(BaseModel):
    """Node or container metrics document.

    ``Metrics()`` is what the client returns when the agent answers with
    no content.
    """

    datapoints: list[DataPoint] = Field(default_factory=list)
    dimensions: dict[str, Any] = Field(default_factory=dict)
