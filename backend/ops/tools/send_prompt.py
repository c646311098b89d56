# ------------------------------------------------------------
# Module: tools/send_prompt.py
# Purpose: CLI to build a templated prompt and (optionally) send it to the proxy.
# ------------------------------------------------------------

from __future__ import annotations

import argparse
import sys

from openai import OpenAI, OpenAIError

DEFAULT_ENDPOINT = "http://127.0.0.1:8033/v1"
DEFAULT_MODEL = "gemini-webui"


def code_task_prompt(task: str) -> str:
    return f"""You are in Code Mode.
Reply with exactly ONE XML tool call (or <attempt_completion> once the task is fully done).
No characters or blank lines outside the tool tags.

Available tools:
- <write_to_file> requires <path>, <content>, <line_count>
- <read_file> requires <args> with 1..N <file><path>...</path></file>
- <apply_diff> requires <path>, <diff><![CDATA[ line-numbered SEARCH/REPLACE blocks ]]></diff>
- <create_directory> requires <path>
- <execute_command> requires <command>

[Task]
{task}

[Rules]
1) Output a single tool XML tag and nothing else.
2) <line_count> must match the real number of lines written.
3) If no tool is needed, output:
<attempt_completion>
  <result>(summary of this step)</result>
</attempt_completion>
Stop immediately after the output."""


def switch_prompt(mode: str, reason: str) -> str:
    return f"""Output only the following XML, with no extra text or blank lines, then stop:
<switch_mode>
  <mode_slug>{mode}</mode_slug>
  <reason>{reason}</reason>
</switch_mode>"""


def ask_xml_prompt(task: str) -> str:
    return f"""Your whole reply must match:
^<attempt_completion>\\s*<result>[\\s\\S]+<\\/result>\\s*<\\/attempt_completion>$

Put the answer to the task inside <result>, add nothing else, then stop.

Task: {task}

Output only:
<attempt_completion>
<result>(final answer here)</result>
</attempt_completion>"""


def build_prompt(template: str, task: str = "", mode: str = "code", reason: str = "") -> str:
    """Render one of the templates: code-task (default), switch, ask-xml."""
    if template == "switch":
        return switch_prompt(mode, reason or "enter the coding phase to start implementing changes")
    if template == "ask-xml":
        return ask_xml_prompt(task or "hello")
    return code_task_prompt(task or "create 1.txt in the project root containing 123")


def send(client: OpenAI, model: str, prompt: str, *, stream: bool) -> str:
    """Send `prompt` as a single user message; print deltas when streaming."""
    messages = [{"role": "user", "content": prompt}]
    if not stream:
        res = client.chat.completions.create(model=model, messages=messages, stream=False)
        return res.choices[0].message.content or ""

    parts = []
    for chunk in client.chat.completions.create(model=model, messages=messages, stream=True):
        if not chunk.choices:
            continue
        delta = chunk.choices[0].delta.content or ""
        if delta:
            parts.append(delta)
            print(delta, end="", flush=True)
    print()
    return "".join(parts)


def main() -> None:
    ap = argparse.ArgumentParser(description="Build a prompt and send it to the web UI proxy.")
    ap.add_argument(
        "--template",
        choices=("code-task", "switch", "ask-xml"),
        default="code-task",
        help="Prompt template to render.",
    )
    ap.add_argument("--task", default="", help="Task text for code-task / ask-xml.")
    ap.add_argument("--mode", default="code", help="Mode slug for the switch template.")
    ap.add_argument("--reason", default="", help="Reason for the switch template.")
    ap.add_argument("--post", action="store_true", help="Send the prompt (default: print only).")
    ap.add_argument("--stream", action="store_true", help="Request an SSE stream.")
    ap.add_argument("--endpoint", default=DEFAULT_ENDPOINT, help="Proxy base URL (…/v1).")
    ap.add_argument("--model", default=DEFAULT_MODEL, help="Model id to send.")
    args = ap.parse_args()

    prompt = build_prompt(args.template, args.task, args.mode, args.reason)
    print(f"Template: {args.template} | Stream: {'on' if args.stream else 'off'}")
    print(f"Endpoint: {args.endpoint}")
    print(f"--- Prompt ---\n{prompt}\n--------------")

    if not args.post:
        print("(print only; add --post to send)")
        return

    # The proxy ignores the key; the SDK requires one.
    client = OpenAI(base_url=args.endpoint, api_key="not-needed")
    try:
        text = send(client, args.model, prompt, stream=args.stream)
    except OpenAIError as e:
        print(f"request failed: {e}", file=sys.stderr)
        sys.exit(1)

    if not args.stream:
        print(f"\n=== RESULT ===\n{text}\n=== END ===")


if __name__ == "__main__":
    main()
