"""Configuration models for verification runs."""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from azure_vm_verify.errors import ConfigurationError


class ExpectedTopology(BaseModel):
    """Expected image identity of the provisioned virtual machine."""

    publisher: str = Field("Canonical", description="Image publisher")
    offer: str = Field("0001-com-ubuntu-server-jammy", description="Image offer")
    sku: str = Field("22_04-lts-gen2", description="Image SKU")
    version: str = Field("latest", description="Image version, checked only when enabled")

    class Config:
        extra = "forbid"
        frozen = True


class VerificationConfig(BaseModel):
    """Everything a verification run needs, supplied by the caller."""

    working_dir: str = Field(".", description="Directory holding the Terraform definitions")
    subscription_id: str = Field(..., description="Azure subscription to inspect")
    label_prefix: Optional[str] = Field(None, description="Naming prefix passed to Terraform")
    label_prefix_var: str = Field("labelPrefix", description="Terraform variable receiving the prefix")
    variables: Dict[str, str] = Field(default_factory=dict, description="Extra Terraform variables")
    env: Dict[str, str] = Field(default_factory=dict, description="Environment overrides for Terraform")
    path_prepend: List[str] = Field(default_factory=list, description="Directories prepended to PATH")
    expected: ExpectedTopology = Field(default_factory=ExpectedTopology)
    verify_image_version: bool = Field(False, description="Also compare the image version")
    command_timeout: Optional[int] = Field(None, description="Terraform command timeout in seconds", gt=0)
    retry_total: Optional[int] = Field(None, description="Azure SDK retry budget", ge=0)

    @field_validator('subscription_id')
    @classmethod
    def validate_subscription_id(cls, v: str) -> str:
        """Reject blank subscription ids."""
        if not v or not v.strip():
            raise ValueError("subscription_id must not be empty")
        return v.strip()

    class Config:
        extra = "forbid"

    def terraform_variables(self) -> Dict[str, str]:
        """Variables handed to terraform apply/destroy."""
        variables = dict(self.variables)
        if self.label_prefix:
            variables[self.label_prefix_var] = self.label_prefix
        return variables

    def environment_overrides(self, base_path: Optional[str] = None) -> Dict[str, str]:
        """
        Build the environment overlay for the provisioner.

        Args:
            base_path: PATH to extend (defaults to the current process PATH)

        Returns:
            Mapping of variable names to values, PATH included when prepends are set
        """
        overrides = dict(self.env)
        if self.path_prepend:
            if base_path is None:
                base_path = overrides.get("PATH", os.environ.get("PATH", ""))
            parts = list(self.path_prepend)
            if base_path:
                parts.append(base_path)
            overrides["PATH"] = os.pathsep.join(parts)
        return overrides

    @classmethod
    def from_file(cls, path: str, **overrides) -> 'VerificationConfig':
        """
        Load configuration from a JSON file.

        Args:
            path: JSON file path
            **overrides: Values taking precedence over the file (None values ignored)

        Returns:
            Validated configuration
        """
        file_path = Path(path)
        if not file_path.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        try:
            data = json.loads(file_path.read_text())
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")

        return cls.from_dict(data, **overrides)

    @classmethod
    def from_dict(cls, data: Dict, **overrides) -> 'VerificationConfig':
        """Validate a mapping, raising ConfigurationError on bad input."""
        merged = dict(data)
        for key, value in overrides.items():
            if value is None:
                continue
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value

        try:
            return cls(**merged)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e
