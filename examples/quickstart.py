#!/usr/bin/env python3
"""
Gatekeeper Quickstart — the whole account lifecycle in one script.

Sign up → sign in → session → rename → change password → sign out.
Run with: python examples/quickstart.py

Requires: pip install httpx
Gatekeeper must be running (gatekeeper serve) at http://localhost:8000,
pointed at a live identity backend via GATEKEEPER_IDENTITY_URL.
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8000/api"


def main():
    run_id = uuid.uuid4().hex[:6]
    email = f"demo-{run_id}@example.com"
    password = "demo-password-123"
    # One httpx.Client == one browser: it keeps the context cookie
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    print("Checking gatekeeper health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Gatekeeper not reachable at {BASE}")
        print("Start it with:  gatekeeper serve --reload")
        sys.exit(1)
    health = resp.json()
    print(f"  Identity: {'✓' if health['identity'] == 'ok' else '✗'}")
    print(f"  Redis:    {'✓' if health['redis'] == 'ok' else '✗'} (rate limiting)")
    if health["status"] != "healthy":
        print("\nERROR: Identity backend is unreachable. Check GATEKEEPER_IDENTITY_URL.")
        sys.exit(1)

    # ── Sign up ───────────────────────────────────────────────────
    print("\n1. Signing up...")
    resp = client.post("/auth/signup", json={
        "email": email,
        "password": password,
        "username": f"demo-{run_id}",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    print(f"   {resp.json()['message']}")

    # ── Sign in ───────────────────────────────────────────────────
    print("\n2. Signing in...")
    resp = client.post("/auth/signin", json={"email": email, "password": password})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    user = resp.json()["user"]
    print(f"   Signed in as {user['name']} (id {user['id']})")

    # ── Session ───────────────────────────────────────────────────
    print("\n3. Reading the session...")
    session = client.get("/auth/session").json()
    print(f"   authenticated={session['authenticated']} issued_at={session['issued_at']}")

    # ── Rename ────────────────────────────────────────────────────
    print("\n4. Changing username...")
    resp = client.put("/profile/username", json={"username": f"renamed-{run_id}"})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   {resp.json()['message']}")

    # ── Change password ───────────────────────────────────────────
    print("\n5. Changing password...")
    new_password = "demo-password-456"
    resp = client.post("/profile/password", json={
        "current_password": password,
        "new_password": new_password,
        "confirm_password": new_password,
    })
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   {resp.json()['message']}")

    # A mismatched confirmation never reaches the backend
    resp = client.post("/profile/password", json={
        "current_password": new_password,
        "new_password": "a",
        "confirm_password": "b",
    })
    print(f"   Mismatch check: {resp.status_code} {resp.json()['detail']}")

    # ── Sign out ──────────────────────────────────────────────────
    print("\n6. Signing out...")
    client.post("/auth/signout")
    session = client.get("/auth/session").json()
    print(f"   authenticated={session['authenticated']}")

    print("\n✓ Done")


if __name__ == "__main__":
    main()
