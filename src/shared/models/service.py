"""Service definition model (the parts of serverless.yml the plugin reads).

The service definition is also the environment injection target: resolved
Stripe ids are written into `environment` (provider level) and webhook
secrets into the receiving function's `environment`.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.shared.errors import ConfigurationError, FunctionReferenceError
from src.shared.models.declared import StripeAccountConfig


class CustomDomain(BaseModel):
    """Domain routing for the HTTP API (serverless-domain-manager)."""

    model_config = ConfigDict(populate_by_name=True)

    domain_name: str | None = Field(default=None, alias="domainName")
    base_path: str | None = Field(default=None, alias="basePath")


class FunctionDefinition(BaseModel):
    """A deployed function and its event triggers."""

    name: str | None = None
    handler: str | None = None
    events: list[dict[str, Any]] = Field(default_factory=list)
    environment: dict[str, Any] = Field(default_factory=dict)

    def post_path(self) -> str | None:
        """Path of the first HTTP POST trigger, if any.

        String shorthand triggers (``http: POST /path``) are ignored; only
        the mapping form carries an explicit method and path.
        """
        for event in self.events:
            http = event.get("http")
            if not isinstance(http, dict):
                continue
            if str(http.get("method", "")).lower() == "post":
                return str(http.get("path", ""))
        return None


class ServiceDefinition(BaseModel):
    """Serverless service as seen by the Stripe plugin."""

    service: str | None = None
    stage: Any = None
    region: Any = None
    functions: dict[str, FunctionDefinition] = Field(default_factory=dict)
    environment: dict[str, Any] = Field(default_factory=dict)
    custom_domain: CustomDomain | None = None
    stripe: list[StripeAccountConfig] | None = None
    multi_account: bool = False

    @classmethod
    def from_document(
        cls,
        document: dict[str, Any],
        stage: str | None = None,
        region: str | None = None,
    ) -> "ServiceDefinition":
        """Build from a parsed serverless.yml document.

        Args:
            document: Parsed YAML/JSON mapping
            stage: CLI stage override (takes precedence over provider.stage)
            region: CLI region override (takes precedence over provider.region)

        Raises:
            ConfigurationError: If the document does not match the schema
        """
        provider = document.get("provider") or {}
        custom = document.get("custom") or {}
        service = document.get("service")
        if isinstance(service, dict):
            service = service.get("name")

        stripe_block = custom.get("stripe")
        multi_account = isinstance(stripe_block, list)
        if stripe_block is None:
            accounts = None
        elif multi_account:
            accounts = stripe_block
        else:
            accounts = [stripe_block]

        functions = {}
        for function_name, definition in (document.get("functions") or {}).items():
            functions[function_name] = definition or {}

        try:
            return cls(
                service=service,
                stage=stage or provider.get("stage"),
                region=region or provider.get("region"),
                functions=functions,
                environment=provider.get("environment") or {},
                custom_domain=custom.get("customDomain"),
                stripe=accounts,
                multi_account=multi_account,
            )
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise ConfigurationError(
                "Service definition does not match the expected schema",
                violations=errors,
            ) from e

    def resolve_post_path(self, function_name: str) -> str:
        """Return the HTTP POST path of a function.

        Raises:
            FunctionReferenceError: Function is not defined or has no
                HTTP POST event
        """
        function = self.functions.get(function_name)
        if function is None:
            raise FunctionReferenceError(
                f"Function {function_name} not found", field="functionName"
            )

        path = function.post_path()
        if path is None:
            raise FunctionReferenceError(
                f"Function {function_name} does not have an HTTP POST event",
                field="functionName",
            )
        return path
