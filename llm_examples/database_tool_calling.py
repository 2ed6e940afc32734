"""Ask a tool-calling model for employee details stored in SQLite."""

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from llm_examples.utilities import get_from_config
from webui.app.llm.models import OptionsBuilder
from webui.app.llm.ollama_client import OllamaClient
from webui.app.tools.database_query import DatabaseQueryToolSpec
from webui.app.tools.specs import PromptBuilder

LOGGER = logging.getLogger(__name__)

DEFAULT_PROMPT = "Give me the details of the employee named 'Rahul Kumar'?"


def run(client: OllamaClient, model: str, prompt: str = DEFAULT_PROMPT, db_path: str | None = None) -> list[str]:
    spec = DatabaseQueryToolSpec.get_specification(db_path)
    client.register_tool(spec)
    tool_prompt = PromptBuilder().with_tool_specification(spec).with_prompt(prompt).build()
    lines: list[str] = []
    for tool_result in client.generate_with_tools(model, tool_prompt, OptionsBuilder().build()).tool_results:
        line = f"[Result of executing tool '{tool_result.function_name}']: {tool_result.result}"
        print(line)
        lines.append(line)
    return lines


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", help="path to the example YAML config")
    parser.add_argument("--db", help="SQLite employee database path")
    parser.add_argument("--prompt", default=DEFAULT_PROMPT)
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s %(message)s")

    client = OllamaClient(get_from_config("host", args.config), request_timeout_seconds=60)
    run(client, get_from_config("tools_model_mistral", args.config), args.prompt, args.db)


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
