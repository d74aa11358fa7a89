"""
LLM interaction via OpenRouter: ask a model for an ASCII STL from a text
description, and cut the STL out of the reply.
"""

import re
import time
import logging
from typing import Optional, Tuple

import requests

from stl_bench.config import Config
from stl_bench.prompt import build_system_prompt, build_user_prompt

log = logging.getLogger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"

MAX_RETRIES = 2
RETRY_DELAY = 5  # seconds

_FENCE_LINE = re.compile(r"^```")


# ══════════════════════════════════════════════════════════════════════════════
# STL EXTRACTION
# ══════════════════════════════════════════════════════════════════════════════

def clean_stl_text(raw: str) -> str:
    """
    Strip Markdown fences and surrounding chatter from an LLM reply.

    If the reply contains "solid " followed later by "endsolid", everything
    outside that span (through the end of the endsolid line) is dropped.
    """
    lines = raw.replace("\r\n", "\n").split("\n")
    text = "\n".join(line for line in lines if not _FENCE_LINE.match(line.strip())).strip()

    lowered = text.lower()
    start = lowered.find("solid ")
    end = lowered.rfind("endsolid")
    if start != -1 and end != -1 and end > start:
        line_break = text.find("\n", end)
        text = text[start:len(text) if line_break == -1 else line_break].strip()
    return text


# ══════════════════════════════════════════════════════════════════════════════
# QUERY OPENROUTER
# ══════════════════════════════════════════════════════════════════════════════

def generate_ascii_stl(
    description: str,
    solid_name: str,
    config: Config,
) -> Tuple[Optional[str], float]:
    """
    Ask the configured model for an ASCII STL of ``description``.

    Retries with exponential backoff on rate limits and timeouts.

    Returns:
        (stl_text_or_None, response_time_seconds)
    """
    headers = {
        "Authorization": f"Bearer {config.openrouter_api_key}",
        "Content-Type": "application/json",
        "X-Title": "STL Bench",
    }
    payload = {
        "model": config.model,
        "messages": [
            {"role": "system", "content": build_system_prompt()},
            {"role": "user", "content": build_user_prompt(description, solid_name)},
        ],
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
    }

    log.info(f"  Querying {config.model} for '{solid_name}'...")
    t_start = time.time()

    for attempt in range(MAX_RETRIES + 1):
        try:
            response = requests.post(
                OPENROUTER_URL,
                headers=headers,
                json=payload,
                timeout=config.request_timeout,
            )

            if response.status_code == 429:
                if attempt < MAX_RETRIES:
                    wait = RETRY_DELAY * (2 ** attempt)
                    log.warning(f"  Rate limited, retrying in {wait}s...")
                    time.sleep(wait)
                    continue
                elapsed = time.time() - t_start
                log.warning(f"  {config.model} rate limited after {MAX_RETRIES + 1} attempts")
                return None, elapsed

            if response.status_code != 200:
                elapsed = time.time() - t_start
                log.warning(
                    f"  {config.model} returned HTTP {response.status_code}: "
                    f"{response.text[:200]}"
                )
                return None, elapsed

            elapsed = time.time() - t_start
            reply = response.json()["choices"][0]["message"]["content"] or ""
            stl = clean_stl_text(reply)

            if stl:
                log.info(f"  {config.model} returned {len(stl)} chars of STL ({elapsed:.1f}s)")
                return stl, elapsed
            log.warning(f"  {config.model} returned an empty reply ({elapsed:.1f}s)")
            return None, elapsed

        except requests.exceptions.Timeout:
            if attempt < MAX_RETRIES:
                log.warning(f"  Timeout, retrying (attempt {attempt + 1})...")
                continue
            elapsed = time.time() - t_start
            log.warning(f"  {config.model} timed out after {elapsed:.1f}s")
            return None, elapsed
        except (requests.exceptions.RequestException, KeyError, IndexError, ValueError) as e:
            elapsed = time.time() - t_start
            log.warning(f"  {config.model} error: {e}")
            return None, elapsed

    return None, time.time() - t_start
