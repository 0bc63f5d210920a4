#!/usr/bin/env python3
"""Mock Pwned Passwords range service for PwnGate demos.

Runs on port 3001 and answers ``GET /range/{prefix}`` like the real API,
from a small built-in list of breached passwords. No network access needed.

Usage:
    python3 demo/mock_range_service.py
    PWNGATE_CONFIG=demo/config.yaml pwngate

Special prefixes:
    FFFFF  always answers HTTP 429 (exercise the rate-limit path)
    EEEEE  sleeps past the default 5s lookup timeout
"""

import asyncio
import hashlib
import random

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

app = FastAPI(title="Mock Range Service (PwnGate Demo)")

BREACHED = {
    "password": 3730471,
    "123456": 37359195,
    "qwerty": 3946737,
    "letmein": 251682,
    "hunter2": 17043,
}


def _sha1(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest().upper()


def _bucket(prefix: str) -> list[str]:
    lines = [
        f"{digest[5:]}:{count}"
        for digest, count in ((_sha1(p), c) for p, c in BREACHED.items())
        if digest.startswith(prefix)
    ]
    # Noise so every bucket looks populated.
    rng = random.Random(prefix)
    for _ in range(20):
        suffix = "".join(rng.choice("0123456789ABCDEF") for _ in range(35))
        lines.append(f"{suffix}:{rng.randint(1, 50)}")
    rng.shuffle(lines)
    return lines


@app.get("/range/{prefix}")
async def range_lookup(prefix: str) -> PlainTextResponse:
    prefix = prefix.upper()
    if prefix == "FFFFF":
        return PlainTextResponse("Rate limit exceeded", status_code=429, headers={"Retry-After": "2"})
    if prefix == "EEEEE":
        await asyncio.sleep(6)
    return PlainTextResponse("\r\n".join(_bucket(prefix)))


if __name__ == "__main__":
    print("Mock range service running on http://127.0.0.1:3001")
    uvicorn.run(app, host="127.0.0.1", port=3001, log_level="warning")
