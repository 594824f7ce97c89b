from types import SimpleNamespace

from artforge.services import ledger_service
from artforge.services.auth_service import create_token
from artforge.services.ledger_service import TransactionKind
from tests.conftest import JWT_SECRET, policy_violation, sign_payload, stripe_event


async def _fund(app, account_id, credits):
    async with app.state.session_factory() as db:
        await ledger_service.ensure_account(db, account_id, "artist@example.com")
        await ledger_service.apply_transaction(db, account_id, credits, TransactionKind.PURCHASE, "Starting balance")


async def test_root(client):
    response = await client.get("/api/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_protected_routes_require_token(client):
    for path in ("/api/auth/me", "/api/credits/balance", "/api/credits/history", "/api/generations"):
        response = await client.get(path)
        assert response.status_code == 401, path
        assert response.json()["detail"] == "Not authenticated"


async def test_bad_and_expired_tokens(client):
    response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.json()["detail"] == "Invalid token"

    expired = create_token("acct-1", "artist@example.com", JWT_SECRET, hours=-1)
    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"


async def test_me_provisions_account(client, auth_headers):
    response = await client.get("/api/auth/me", headers=auth_headers("acct-new", "new@example.com"))

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "acct-new"
    assert body["email"] == "new@example.com"
    assert body["credits"] == 0


async def test_public_catalogue(client):
    packages = (await client.get("/api/credits/packages")).json()
    assert [p["id"] for p in packages] == ["starter", "creator", "professional"]
    assert packages[1]["price_display"] == "$24.99"
    assert packages[1]["popular"] is True

    costs = (await client.get("/api/credits/costs")).json()
    assert {(c["content_type"], c["quality"]): c["credits"] for c in costs} == {
        ("image", "standard"): 3,
        ("image", "hd"): 8,
        ("video", "standard"): 15,
        ("video", "hd"): 25,
    }


async def test_generate_without_credits_is_402(client, auth_headers, provider):
    response = await client.post("/api/generate", json={"prompt": "a cat"}, headers=auth_headers())

    assert response.status_code == 402
    detail = response.json()["detail"]
    assert detail["code"] == "INSUFFICIENT_CREDITS"
    assert detail["required"] == 3
    assert detail["available"] == 0
    assert provider.calls == []


async def test_generate_short_prompt_is_400(client, auth_headers):
    response = await client.post("/api/generate", json={"prompt": "ab"}, headers=auth_headers())

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_PROMPT"


async def test_generate_rejects_unknown_style(client, auth_headers):
    response = await client.post(
        "/api/generate", json={"prompt": "a cat", "style": "crayon"}, headers=auth_headers()
    )
    assert response.status_code == 422


async def test_generate_and_list(app, client, auth_headers):
    await _fund(app, "acct-1", 10)

    response = await client.post(
        "/api/generate",
        json={"prompt": "a cat", "quality": "standard", "contentType": "image", "style": "Watercolor"},
        headers=auth_headers(),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["credits_used"] == 3
    assert body["content_url"].startswith("data:image/png;base64,")
    assert body["generation"]["style"] == "watercolor"

    balance = (await client.get("/api/credits/balance", headers=auth_headers())).json()
    assert balance == {"credits": 7, "total_purchased": 10, "total_consumed": 3}

    listing = (await client.get("/api/generations", headers=auth_headers())).json()
    assert [g["id"] for g in listing["items"]] == [body["generation"]["id"]]
    assert listing["items"][0]["result_url"] == body["content_url"]

    one = await client.get(f"/api/generations/{body['generation']['id']}", headers=auth_headers())
    assert one.status_code == 200
    missing = await client.get("/api/generations/nope", headers=auth_headers())
    assert missing.status_code == 404

    history = (await client.get("/api/credits/history", headers=auth_headers())).json()
    assert [t["amount"] for t in history["items"]] == [-3, 10]


async def test_provider_rejection_is_reported_without_charge(app, client, auth_headers, provider):
    await _fund(app, "acct-1", 10)
    provider.results = [policy_violation()]

    response = await client.post("/api/generate", json={"prompt": "a cat"}, headers=auth_headers())

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "GENERATION_FAILED"
    assert detail["kind"] == "policy_violation"
    balance = (await client.get("/api/credits/balance", headers=auth_headers())).json()
    assert balance["credits"] == 10


async def test_checkout_then_webhook_grants_credits(client, auth_headers, stripe_client):
    headers = auth_headers()
    checkout = await client.post("/api/credits/checkout", json={"package_id": "starter"}, headers=headers)
    assert checkout.status_code == 200
    session_id = checkout.json()["session_id"]
    assert checkout.json()["checkout_url"].endswith(session_id)

    status = (await client.get(f"/api/credits/sessions/{session_id}", headers=headers)).json()
    assert status["status"] == "pending"

    body = stripe_event(session_id)
    for _ in range(3):
        response = await client.post(
            "/api/credits/webhook/stripe",
            content=body,
            headers={"stripe-signature": sign_payload(body), "Content-Type": "application/json"},
        )
        assert response.status_code == 200
        assert response.json() == {"received": True}

    status = (await client.get(f"/api/credits/sessions/{session_id}", headers=headers)).json()
    assert status["status"] == "completed"
    balance = (await client.get("/api/credits/balance", headers=headers)).json()
    assert balance["credits"] == 50


async def test_webhook_with_bad_signature_is_400(client, auth_headers):
    checkout = await client.post("/api/credits/checkout", json={"package_id": "starter"}, headers=auth_headers())
    body = stripe_event(checkout.json()["session_id"])

    response = await client.post(
        "/api/credits/webhook/stripe",
        content=body,
        headers={"stripe-signature": sign_payload(body, secret="whsec_other")},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_SIGNATURE"
    balance = (await client.get("/api/credits/balance", headers=auth_headers())).json()
    assert balance["credits"] == 0


async def test_checkout_unknown_package_is_404(client, auth_headers):
    response = await client.post("/api/credits/checkout", json={"package_id": "enterprise"}, headers=auth_headers())

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "PACKAGE_NOT_FOUND"


async def test_enhance_prompt(app, client, auth_headers):
    async def create(**kwargs):
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="A vivid cat portrait"))])

    app.state.openai_client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

    response = await client.post("/api/enhance-prompt", json={"prompt": "a cat"}, headers=auth_headers())

    assert response.status_code == 200
    assert response.json() == {"enhanced_prompt": "A vivid cat portrait", "success": True}
