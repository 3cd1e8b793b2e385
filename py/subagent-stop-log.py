"""Session logger hook for subagents. Runs on the SubagentStop event.

Reads hook input from stdin, waits for the subagent transcript to finish
flushing, and calls the log converter to produce a readable markdown log.
Converter stderr is appended to .claude/logs/.converter-errors.log, which is
removed again when empty. Exits 0 always.
"""

import json
import os
import subprocess
import sys
import time
from collections import namedtuple
from datetime import datetime
from zoneinfo import ZoneInfo

# Replaced with the chosen zone by install.py
DEFAULT_TZ = "__TZ__"

LOG_DIR = os.path.join(".claude", "logs")
ERROR_LOG = os.path.join(LOG_DIR, ".converter-errors.log")
CONVERTER_NAME = "log-converter.py"

POLL_CHECKS = 10
POLL_INTERVAL = 0.2

NO_TIME = "0000"

# Outcomes reported by run()
LOGGED = "logged"
MALFORMED_INPUT = "malformed-input"
MISSING_TRANSCRIPT = "missing-transcript"
UNREADABLE_TRANSCRIPT = "unreadable-transcript"

Config = namedtuple("Config", ["tz", "converter"])
HookInput = namedtuple(
    "HookInput", ["transcript_path", "session_id", "agent_id", "agent_type"]
)
FormattedTimestamp = namedtuple("FormattedTimestamp", ["date", "time", "local"])


def load_config(environ=None):
    """Resolve process-wide settings once, at startup."""
    if environ is None:
        environ = os.environ
    script_dir = os.path.dirname(os.path.abspath(__file__))
    return Config(
        tz=environ.get("TZ") or DEFAULT_TZ,
        converter=(environ.get("SUBAGENT_LOG_CONVERTER")
                   or os.path.join(script_dir, CONVERTER_NAME)),
    )


def _field(data, key, default):
    value = data.get(key)
    if value is None or value == "":
        return default
    return str(value)


def parse_hook_input(raw):
    """Parse the raw stdin bytes. Returns a HookInput, or None if malformed."""
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None

    return HookInput(
        transcript_path=_field(data, "agent_transcript_path", ""),
        session_id=_field(data, "session_id", "unknown"),
        agent_id=_field(data, "agent_id", "unknown"),
        agent_type=_field(data, "agent_type", "subagent"),
    )


def wait_for_stable_size(path, checks=POLL_CHECKS, interval=POLL_INTERVAL):
    """Block until two consecutive size readings match, or checks run out.

    The transcript writer gives no completion signal, so a stable size is
    taken to mean it has finished flushing. Returns the number of checks made.
    """
    prev_size = -1
    performed = 0
    for _ in range(checks):
        performed += 1
        try:
            curr_size = os.path.getsize(path)
        except OSError:
            curr_size = 0
        if curr_size == prev_size:
            break
        prev_size = curr_size
        time.sleep(interval)
    return performed


def extract_start_timestamp(content):
    """Return the timestamp of the first record that has one, else None."""
    for line in content.split("\n"):
        if not line.strip():
            continue
        try:
            ts = json.loads(line).get("timestamp")
        except (ValueError, AttributeError):
            continue
        if ts:
            return ts
    return None


def _today():
    return datetime.now().strftime("%Y-%m-%d")


def format_start_time(start_ts, tz_name):
    """Convert the transcript start instant to local date/time strings.

    Falls back to today's date and a "0000" time when the instant is missing
    or cannot be formatted in tz_name, so a log name can always be built.
    """
    if not start_ts:
        return FormattedTimestamp(_today(), NO_TIME, "")

    try:
        instant = datetime.fromisoformat(start_ts.replace("Z", "+00:00"))
        local_dt = instant.astimezone(ZoneInfo(tz_name))
        return FormattedTimestamp(
            date=local_dt.strftime("%Y-%m-%d"),
            time=local_dt.strftime("%H%M"),
            local=local_dt.strftime("%Y-%m-%dT%H:%M:%S"),
        )
    except (KeyError, ValueError, TypeError, AttributeError, OSError,
            OverflowError):
        # ZoneInfoNotFoundError is a KeyError; bad instants raise the rest
        return FormattedTimestamp(_today(), NO_TIME, str(start_ts))


def build_log_path(log_dir, stamp, session_id, agent_type, agent_id):
    """Create log_dir if needed and return the log file path for this agent."""
    os.makedirs(log_dir, exist_ok=True)
    name = (f"{stamp.date}-{stamp.time}-{session_id[:8]}"
            f"-subagent-{agent_type}-{agent_id[:8]}.md")
    return os.path.join(log_dir, name)


def run_converter(converter, hook_input, log_file, stamp, error_log=ERROR_LOG):
    """Run the converter with stderr appended to error_log.

    Returns the converter's exit status, or None if it could not be started.
    Failures are never raised; a non-empty error_log is the only trace.
    """
    args = [
        sys.executable, converter,
        "--transcript", hook_input.transcript_path,
        "--output", log_file,
        "--session-id", hook_input.session_id,
        "--date", stamp.date,
        "--start-time", stamp.local,
        "--agent-type", hook_input.agent_type,
        "--agent-id", hook_input.agent_id,
    ]
    try:
        with open(error_log, "a") as err_f:
            result = subprocess.run(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=err_f,
            )
    except (OSError, subprocess.SubprocessError):
        return None
    return result.returncode


def prune_error_log(error_log=ERROR_LOG):
    """Remove error_log if empty. Its presence is the error signal."""
    try:
        if os.path.isfile(error_log) and os.path.getsize(error_log) == 0:
            os.remove(error_log)
    except OSError:
        pass


def run(raw_input, config):
    """Run the hook once and return its outcome tag.

    One of LOGGED, MALFORMED_INPUT, MISSING_TRANSCRIPT or UNREADABLE_TRANSCRIPT.
    """
    hook_input = parse_hook_input(raw_input)
    if hook_input is None:
        return MALFORMED_INPUT

    transcript_path = hook_input.transcript_path
    if not transcript_path or not os.path.isfile(transcript_path):
        return MISSING_TRANSCRIPT

    wait_for_stable_size(transcript_path)

    try:
        with open(transcript_path, "r", encoding="utf-8", errors="replace") as f:
            content = f.read()
    except OSError:
        return UNREADABLE_TRANSCRIPT

    start_ts = extract_start_timestamp(content)
    stamp = format_start_time(start_ts, config.tz)

    log_file = build_log_path(LOG_DIR, stamp, hook_input.session_id,
                              hook_input.agent_type, hook_input.agent_id)

    run_converter(config.converter, hook_input, log_file, stamp)
    prune_error_log()
    return LOGGED


def main():
    config = load_config()
    return run(sys.stdin.buffer.read(), config)


if __name__ == "__main__":
    try:
        main()
    except Exception:
        pass
    sys.exit(0)
