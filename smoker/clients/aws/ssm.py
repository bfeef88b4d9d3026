"""SSM Parameter Store client."""

from __future__ import annotations

from typing import Any

from smoker.clients.aws.base import AwsServiceClient
from smoker.exceptions import ValidationError

PARAMETER_TYPES = ("String", "StringList", "SecureString")


class SsmClient(AwsServiceClient):
    """Read, write and delete Parameter Store parameters.

    Optional ``kms_key_id`` is used when writing SecureString parameters.
    """

    service_name = "ssm"
    component = "ssm"

    def __init__(self, name: str = "SsmClient", *args: Any, **kwargs: Any) -> None:
        super().__init__(name, *args, **kwargs)

    async def read(self, name: str, with_decryption: bool = False) -> str:
        """Return the value of parameter ``name``."""
        client = self.aws()
        self.require_argument(name, "SSM read operation requires a parameter name")

        response = await self.call(
            "read",
            f"Failed to read SSM parameter {name}",
            client.get_parameter,
            details={"parameter": name},
            Name=name,
            WithDecryption=with_decryption,
        )
        return response["Parameter"]["Value"]

    async def write(
        self,
        name: str,
        value: str,
        parameter_type: str = "String",
        overwrite: bool = True,
    ) -> None:
        """Create or update a parameter.

        Raises
        ------
        ValidationError
            If name is empty or parameter_type is not a Parameter Store type
        """
        client = self.aws()
        self.require_argument(name, "SSM write operation requires a parameter name")

        if parameter_type not in PARAMETER_TYPES:
            raise ValidationError(
                f"Invalid SSM parameter type: {parameter_type}. "
                f"Must be one of {list(PARAMETER_TYPES)}",
                details={"component": self.component, "parameter": name},
            )

        kwargs: dict[str, Any] = {
            "Name": name,
            "Value": value,
            "Type": parameter_type,
            "Overwrite": overwrite,
        }

        kms_key_id = self.get_typed_config("kms_key_id", "", str)
        if parameter_type == "SecureString" and kms_key_id:
            kwargs["KeyId"] = kms_key_id

        await self.call(
            "write",
            f"Failed to write SSM parameter {name}",
            client.put_parameter,
            details={"parameter": name},
            **kwargs,
        )

    async def delete(self, name: str) -> None:
        client = self.aws()
        self.require_argument(name, "SSM delete operation requires a parameter name")

        await self.call(
            "delete",
            f"Failed to delete SSM parameter {name}",
            client.delete_parameter,
            details={"parameter": name},
            Name=name,
        )
