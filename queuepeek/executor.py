import logging
import subprocess

logger = logging.getLogger(__name__)


def render_command(template: str, host: str, pid: str) -> str:
    """Plain substring replacement of {host} and {pid}; nothing else is templated."""
    return template.replace("{host}", host).replace("{pid}", pid)


def run_command(command: str) -> tuple[int, str]:
    """
    Executes shell command (stdout passes through) and blocks until it exits. Returns (returncode, stderr_or_empty).
    Never raises, so one bad invocation does not stop the next.
    """
    logger.debug("running %s", command)
    try:
        r = subprocess.run(command, shell=True, stderr=subprocess.PIPE, text=True)
        err = (r.stderr or "").strip()
        return r.returncode, err
    except OSError as e:
        return 1, f"exception: {e}"
