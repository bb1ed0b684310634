"""
write_load.py - simple async load script: create links, then resolve each once

Usage:
  python write_load.py --base http://127.0.0.1:7999 --count 2000 --concurrency 100 --out links_created.jsonl
"""
import argparse
import asyncio
import json
import random
import string
import time
from datetime import datetime, timezone

import httpx

def _now_iso():
    return datetime.now(timezone.utc).isoformat()

def _rand_host():
    tlds = ["com", "net", "org", "io", "ai"]
    names = ["example", "sample", "demo", "test", "alpha", "beta", "gamma"]
    return f"{random.choice(names)}.{random.choice(tlds)}"

def _rand_path(n=6):
    alphabet = string.ascii_letters + string.digits
    return "".join(random.choice(alphabet) for _ in range(n))

async def _create_one(client: httpx.AsyncClient, base: str, idx: int, max_uses: int):
    url = f"https://{_rand_host()}/{_rand_path(8)}?q={idx}"
    payload = {"link": url, "max_uses": max_uses}
    try:
        r = await client.post(f"{base}/custom", json=payload, timeout=10)
        r.raise_for_status()
        return {"short": r.text.strip(), "url": url}
    except httpx.HTTPError:
        return None

async def _resolve_one(client: httpx.AsyncClient, short: str):
    try:
        r = await client.get(short, timeout=10, follow_redirects=False)
        return r.status_code == 307
    except httpx.HTTPError:
        return False

async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--base", default="http://127.0.0.1:7999")
    parser.add_argument("--count", type=int, default=2000)
    parser.add_argument("--concurrency", type=int, default=100)
    parser.add_argument("--max-uses", type=int, default=0)
    parser.add_argument("--out", default="links_created.jsonl")
    args = parser.parse_args()

    start_iso = _now_iso()
    t0 = time.perf_counter()
    created = []
    resolved = 0

    limit = httpx.Limits(max_connections=args.concurrency, max_keepalive_connections=args.concurrency)
    async with httpx.AsyncClient(limits=limit) as client:
        sem = asyncio.Semaphore(args.concurrency)

        async def _create(i):
            async with sem:
                rec = await _create_one(client, args.base, i, args.max_uses)
                if rec:
                    created.append(rec)

        async def _resolve(rec):
            nonlocal resolved
            async with sem:
                if await _resolve_one(client, rec["short"]):
                    resolved += 1

        await asyncio.gather(*(_create(i) for i in range(args.count)))
        t_created = time.perf_counter()
        await asyncio.gather(*(_resolve(rec) for rec in created))

    with open(args.out, "w", encoding="utf-8") as out_f:
        for rec in created:
            out_f.write(json.dumps(rec) + "\n")

    t_end = time.perf_counter()
    print(f"START: {start_iso}")
    print(f"END:   {_now_iso()}")
    print(f"TOTAL: {t_end - t0:.3f} s")
    print(f"OPS:   creates={args.count}, ok={len(created)}, resolves ok={resolved}")
    if t_created > t0:
        print(f"CREATE TPS:  {len(created)/(t_created - t0):.1f} req/s")
    if t_end > t_created:
        print(f"RESOLVE TPS: {resolved/(t_end - t_created):.1f} req/s")

if __name__ == "__main__":
    asyncio.run(main())
