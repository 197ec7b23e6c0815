"""Task result hierarchy reported by the worker that drives inventory runs.

A task covers one or more integrations (clusters); each integration reports a
result per resource type it was asked to describe.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ResourceTypeResult(BaseModel):
    """Item count and error, if any, for one resource type."""

    resource_type: str
    error: str = ""
    resource_count: int = 0


class IntegrationResult(BaseModel):
    """Progress of one integration."""

    integration_id: str
    all_resource_types: List[str] = Field(default_factory=list)
    resource_type_results: List[ResourceTypeResult] = Field(default_factory=list)

    @property
    def all_resource_types_count(self) -> int:
        return len(self.all_resource_types)

    @property
    def finished_resource_types_count(self) -> int:
        return len(self.resource_type_results)


class TaskResult(BaseModel):
    """Progress of a whole task across integrations."""

    all_integrations: List[str] = Field(default_factory=list)
    progressed_integrations: Dict[str, IntegrationResult] = Field(default_factory=dict)

    def integration(self, integration_id: str) -> IntegrationResult:
        """Return the result entry for ``integration_id``, creating it on first use."""
        result = self.progressed_integrations.get(integration_id)
        if result is None:
            result = IntegrationResult(integration_id=integration_id)
            self.progressed_integrations[integration_id] = result
            if integration_id not in self.all_integrations:
                self.all_integrations.append(integration_id)
        return result

    def record(
        self, integration_id: str, resource_type: str, count: int, error: Optional[str] = None
    ) -> ResourceTypeResult:
        """Append the outcome of one resource type."""
        integration = self.integration(integration_id)
        if resource_type not in integration.all_resource_types:
            integration.all_resource_types.append(resource_type)
        result = ResourceTypeResult(
            resource_type=resource_type, resource_count=count, error=error or ""
        )
        integration.resource_type_results.append(result)
        return result

    def to_dict(self) -> dict:
        """Serialized form including the derived counters."""
        return {
            "all_integrations": list(self.all_integrations),
            "all_integrations_count": len(self.all_integrations),
            "progressed_integrations": {
                key: {
                    **value.model_dump(),
                    "all_resource_types_count": value.all_resource_types_count,
                    "finished_resource_types_count": value.finished_resource_types_count,
                }
                for key, value in self.progressed_integrations.items()
            },
            "progressed_integrations_count": len(self.progressed_integrations),
        }
