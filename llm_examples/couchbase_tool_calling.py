"""Look up and rename airline call-signs in Couchbase through tool calling.

Requires ``CB_CLUSTER_URL``, ``CB_CLUSTER_USERNAME`` and ``CB_CLUSTER_PASSWORD``
in the environment plus ``host``/``tools_model_mistral`` in the example config.
"""

from __future__ import annotations

import argparse
import logging
from datetime import timedelta
from typing import Any

from couchbase.auth import PasswordAuthenticator
from couchbase.cluster import Cluster
from couchbase.options import ClusterOptions
from dotenv import load_dotenv

from llm_examples.airline import (
    AirlineDetail,
    get_call_sign_finder_tool_spec,
    get_call_sign_updater_tool_spec,
)
from llm_examples.utilities import get_from_config, get_from_env_var
from webui.app.llm.models import OptionsBuilder
from webui.app.llm.ollama_client import OllamaClient
from webui.app.tools.specs import PromptBuilder, ToolSpecification

LOGGER = logging.getLogger(__name__)

BUCKET_NAME = "travel-sample"
LOOKUP_PROMPT = "What is the call-sign of Astraeus?"
UPDATE_PROMPT = "I want to code name Astraeus as STARBOUND"


def connect_cluster(connection_string: str, username: str, password: str) -> Cluster:
    options = ClusterOptions(PasswordAuthenticator(username, password))
    options.apply_profile("wan_development")
    cluster = Cluster(connection_string, options)
    cluster.wait_until_ready(timedelta(seconds=10))
    return cluster


def _prompt_for(spec: ToolSpecification, prompt: str) -> str:
    return PromptBuilder().with_tool_specification(spec).with_prompt(prompt).build()


def render_lookup(function_name: str, detail: AirlineDetail | None) -> str:
    if detail is None:
        return f"[Result of tool '{function_name}']: Airline not found! ✈️"
    return f"[Result of tool '{function_name}']: Call-sign of {detail.name} is '{detail.callsign}'! ✈️"


def render_update(function_name: str, updated: Any) -> str:
    return f"[Result of tool '{function_name}']: Call-sign is {'updated' if updated else 'not updated'}! ✈️"


def run(client: OllamaClient, model: str, cluster: Any, bucket_name: str = BUCKET_NAME) -> list[str]:
    """Register both airline tools and run the lookup/rename/lookup sequence."""

    finder = get_call_sign_finder_tool_spec(cluster, bucket_name)
    updater = get_call_sign_updater_tool_spec(cluster, bucket_name)
    client.register_tool(finder)
    client.register_tool(updater)

    lines: list[str] = []
    options = OptionsBuilder().build()
    for spec, prompt, render in (
        (finder, LOOKUP_PROMPT, render_lookup),
        (updater, UPDATE_PROMPT, render_update),
        (finder, LOOKUP_PROMPT, render_lookup),
    ):
        result = client.generate_with_tools(model, _prompt_for(spec, prompt), options)
        for tool_result in result.tool_results:
            line = render(tool_result.function_name, tool_result.result)
            print(line)
            lines.append(line)
    return lines


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--config", help="path to the example YAML config")
    parser.add_argument("--bucket", default=BUCKET_NAME)
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s %(message)s")

    cluster = connect_cluster(
        get_from_env_var("CB_CLUSTER_URL"),
        get_from_env_var("CB_CLUSTER_USERNAME"),
        get_from_env_var("CB_CLUSTER_PASSWORD"),
    )
    client = OllamaClient(get_from_config("host", args.config), request_timeout_seconds=60)
    client.set_verbose(False)
    model = get_from_config("tools_model_mistral", args.config)
    LOGGER.info("running airline tools against %s with %s", args.bucket, model)
    run(client, model, cluster, args.bucket)


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
