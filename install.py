"""subagent-session-logger installer.

Copies the SubagentStop hook (and optionally a log converter) to
.claude/hooks/ and registers the hook in .claude/settings.json.

Usage:
    python3 install.py
"""

import json
import os
import shutil
import sys

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
HOOK_SRC = os.path.join(SCRIPT_DIR, "py", "subagent-stop-log.py")
HOOKS_DIR = os.path.join(".claude", "hooks")
HOOK_DST = os.path.join(HOOKS_DIR, "subagent-stop-log.py")
CONVERTER_DST = os.path.join(HOOKS_DIR, "log-converter.py")
SETTINGS_FILE = os.path.join(".claude", "settings.json")

DEFAULT_TZ = "America/New_York"

HOOKS_CONFIG = {
    "SubagentStop": [{"hooks": [{"type": "command", "command": "python3 .claude/hooks/subagent-stop-log.py"}]}],
}


def info(msg):
    print(f"  {msg}")


def error(msg):
    print(f"  [ERROR] {msg}", file=sys.stderr)
    sys.exit(1)


def prompt(question, default=""):
    hint = f" [{default}]" if default else ""
    answer = input(f"  {question}{hint}: ").strip()
    return answer or default


def prompt_yn(question, default="n"):
    hint = "[Y/n]" if default == "y" else "[y/N]"
    answer = input(f"  {question} {hint} ").strip().lower()
    answer = answer or default
    return answer.startswith("y")


def install_hook(tz_value):
    """Copy the hook into HOOKS_DIR with the timezone baked in."""
    os.makedirs(HOOKS_DIR, exist_ok=True)

    with open(HOOK_SRC, "r") as f:
        content = f.read()

    content = content.replace("__TZ__", tz_value)

    with open(HOOK_DST, "w") as f:
        f.write(content)


def merge_settings():
    """Add the SubagentStop entry, keeping everything else in settings.json."""
    os.makedirs(".claude", exist_ok=True)

    try:
        with open(SETTINGS_FILE, "r") as f:
            settings = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        settings = {}

    existing_hooks = settings.get("hooks", {})
    existing_hooks.update(HOOKS_CONFIG)
    settings["hooks"] = existing_hooks

    with open(SETTINGS_FILE, "w") as f:
        json.dump(settings, f, indent=2)
        f.write("\n")


def main():
    print()
    print("subagent-session-logger installer")
    print("==================================")
    print()

    # --- Preflight checks ---

    if not os.path.isdir(".git"):
        error("Not in a git project root. Run this from your project directory.")

    # --- Timezone ---

    print("Timezone for log timestamps (e.g. America/New_York, America/Chicago, UTC)")
    tz_value = prompt("TZ", DEFAULT_TZ)
    print()

    # --- Converter ---

    print("Log converter to install next to the hook (blank to keep the current one)")
    converter = prompt("Converter path")
    if converter and not os.path.isfile(converter):
        error(f"Converter not found: {converter}")
    print()

    # --- Check for existing installation ---

    if os.path.isfile(HOOK_DST):
        if not prompt_yn("Hook already installed. Overwrite?"):
            print()
            info("Aborted.")
            return
        print()

    # --- Copy scripts ---

    install_hook(tz_value)
    if converter:
        shutil.copy(converter, CONVERTER_DST)

    info(f"Installed scripts to {HOOKS_DIR}/")
    if not os.path.isfile(CONVERTER_DST):
        info(f"No converter at {CONVERTER_DST}; set SUBAGENT_LOG_CONVERTER to point at one.")

    # --- Merge settings ---

    merge_settings()
    info(f"Updated {SETTINGS_FILE}")

    # --- Done ---

    print()
    print("Done! Subagent logs will appear in .claude/logs/ when subagents finish.")
    print("Restart Claude Code to pick up the new hook.")
    print()


if __name__ == "__main__":
    main()
