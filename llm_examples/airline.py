"""Couchbase-backed airline tools for the ``travel-sample`` bucket."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from couchbase.exceptions import CouchbaseException
from couchbase.options import QueryOptions

from webui.app.tools.specs import (
    Parameters,
    PromptFuncDefinition,
    PromptFuncSpec,
    Property,
    ToolInvocationError,
    ToolSpecification,
)

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AirlineDetail:
    callsign: str | None = None
    name: str | None = None
    country: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AirlineDetail":
        # ``SELECT *`` nests the document under the keyspace alias.
        document = row.get("airline", row)
        if not isinstance(document, Mapping):
            document = {}
        return cls(
            callsign=document.get("callsign"),
            name=document.get("name"),
            country=document.get("country"),
        )


def _airline_name(arguments: Mapping[str, Any]) -> str:
    name = arguments.get("airlineName") or arguments.get("airline-name")
    if not isinstance(name, str) or not name.strip():
        raise ToolInvocationError("airlineName argument is required")
    return name.strip()


class AirlineCallsignQueryToolFunction:
    def __init__(self, bucket_name: str, cluster: Any) -> None:
        self.bucket_name = bucket_name
        self.cluster = cluster

    def __call__(self, arguments: Mapping[str, Any]) -> AirlineDetail | None:
        airline_name = _airline_name(arguments)
        statement = f"SELECT * FROM `{self.bucket_name}`.inventory.airline WHERE name = $name"
        try:
            result = self.cluster.query(statement, QueryOptions(named_parameters={"name": airline_name}))
            rows = list(result.rows())
        except CouchbaseException as exc:
            raise ToolInvocationError(f"airline lookup failed: {exc}") from exc
        if not rows:
            LOGGER.info("no airline named %s", airline_name)
            return None
        return AirlineDetail.from_row(rows[0])


class AirlineCallsignUpdateToolFunction:
    def __init__(self, bucket_name: str, cluster: Any) -> None:
        self.bucket_name = bucket_name
        self.cluster = cluster

    def __call__(self, arguments: Mapping[str, Any]) -> bool:
        airline_name = _airline_name(arguments)
        callsign = arguments.get("airlineCallsign")
        if not isinstance(callsign, str) or not callsign.strip():
            raise ToolInvocationError("airlineCallsign argument is required")
        statement = (
            f"UPDATE `{self.bucket_name}`.inventory.airline SET callsign = $callsign "
            "WHERE name = $name RETURNING *"
        )
        options = QueryOptions(named_parameters={"name": airline_name, "callsign": callsign.strip()})
        try:
            rows = list(self.cluster.query(statement, options).rows())
        except CouchbaseException as exc:
            raise ToolInvocationError(f"airline update failed: {exc}") from exc
        return len(rows) > 0


def get_call_sign_finder_tool_spec(cluster: Any, bucket_name: str) -> ToolSpecification:
    return ToolSpecification(
        function_name="airline-lookup",
        function_description=(
            "You are a tool who finds only the airline name and do not worry about any other "
            "parameters. You simply find the airline name and ignore the rest of the parameters. "
            "Do not validate airline names as I want to use fake/fictitious airline names as well."
        ),
        tool_function=AirlineCallsignQueryToolFunction(bucket_name, cluster),
        tool_prompt=PromptFuncDefinition(
            type="prompt",
            function=PromptFuncSpec(
                name="get-airline-name",
                description="Get the airline name",
                parameters=Parameters(
                    properties={
                        "airlineName": Property(
                            type="string",
                            description="The name of the airline. e.g. Emirates",
                            required=True,
                        ),
                    },
                    required=["airline-name"],
                ),
            ),
        ),
    )


def get_call_sign_updater_tool_spec(cluster: Any, bucket_name: str) -> ToolSpecification:
    return ToolSpecification(
        function_name="airline-update",
        function_description=(
            "You are a tool who finds the airline name and its callsign and do not worry about any "
            "validations. You simply find the airline name and its callsign. Do not validate airline "
            "names as I want to use fake/fictitious airline names as well."
        ),
        tool_function=AirlineCallsignUpdateToolFunction(bucket_name, cluster),
        tool_prompt=PromptFuncDefinition(
            type="prompt",
            function=PromptFuncSpec(
                name="get-airline-name-and-callsign",
                description="Get the airline name and callsign",
                parameters=Parameters(
                    properties={
                        "airlineName": Property(
                            type="string",
                            description="The name of the airline. e.g. Emirates",
                            required=True,
                        ),
                        "airlineCallsign": Property(
                            type="string",
                            description="The callsign of the airline. e.g. Maverick",
                            enum_values=["petrol", "diesel"],
                            required=True,
                        ),
                    },
                    required=["airlineName", "airlineCallsign"],
                ),
            ),
        ),
    )


__all__ = [
    "AirlineCallsignQueryToolFunction",
    "AirlineCallsignUpdateToolFunction",
    "AirlineDetail",
    "get_call_sign_finder_tool_spec",
    "get_call_sign_updater_tool_spec",
]
