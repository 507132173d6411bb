from datetime import timedelta

from eventhub.auth.models import UserRole
from eventhub.common.db import utcnow
from eventhub.events.models import EventType

from conftest import PASSWORD


async def test_signup_login_and_me(client):
    response = await client.post(
        "/api/auth/register",
        json={
            "email": "ravi@iiit.ac.in",
            "password": "hunter22",
            "first_name": "Ravi",
            "participant_type": "IIIT",
        },
    )
    assert response.status_code == 201

    response = await client.post("/api/auth/login", json={"email": "ravi@iiit.ac.in", "password": "hunter22"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.json()["email"] == "ravi@iiit.ac.in"
    assert response.json()["role"] == "participant"


async def test_requires_authentication(client):
    response = await client.get("/api/events/")
    assert response.status_code == 401


async def test_organizer_publishes_and_participant_registers(client, make_user, auth):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user()
    now = utcnow()

    response = await client.post(
        "/api/events/",
        headers=auth(organizer),
        json={
            "event_name": "Open Mic",
            "event_description": "Poetry and standup",
            "event_type": "normal",
            "event_tags": ["music"],
            "registration_deadline": (now + timedelta(days=1)).isoformat(),
            "event_start_date": (now + timedelta(days=2)).isoformat(),
            "event_end_date": (now + timedelta(days=2, hours=3)).isoformat(),
            "registration_limit": 1,
        },
    )
    assert response.status_code == 201
    event_id = response.json()["id"]
    assert response.json()["status"] == "draft"

    response = await client.post(f"/api/events/{event_id}/register", headers=auth(participant))
    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "NOT_OPEN"

    response = await client.put(f"/api/events/{event_id}/publish", headers=auth(organizer))
    assert response.json()["status"] == "published"

    response = await client.post(f"/api/events/{event_id}/register", headers=auth(participant))
    assert response.status_code == 200
    ticket_id = response.json()["ticket_id"]
    assert ticket_id.startswith("FEL-")

    latecomer = await make_user()
    response = await client.post(f"/api/events/{event_id}/register", headers=auth(latecomer))
    assert response.status_code == 409
    assert response.json()["detail"]["reason"] == "LIMIT_REACHED"

    response = await client.get("/api/participant/tickets", headers=auth(participant))
    assert [t["ticket_id"] for t in response.json()] == [ticket_id]

    response = await client.post(
        f"/api/organizer/events/{event_id}/scan", headers=auth(organizer), json={"ticket_id": ticket_id}
    )
    assert response.status_code == 200
    response = await client.post(
        f"/api/organizer/events/{event_id}/scan", headers=auth(organizer), json={"ticket_id": ticket_id}
    )
    assert response.status_code == 409
    assert response.json()["detail"]["reason"] == "DUPLICATE_SCAN"


async def test_participants_cannot_manage_events(client, make_user, make_event, auth):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user()
    event = await make_event(organizer)

    response = await client.put(f"/api/events/{event.id}/status", headers=auth(participant), json={"status": "closed"})
    assert response.status_code == 403

    response = await client.get("/api/admin/dashboard", headers=auth(organizer))
    assert response.status_code == 403


async def test_merchandise_purchase_and_approval(client, make_user, make_event, auth):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user()
    shop = await make_event(organizer, event_type=EventType.MERCHANDISE)

    response = await client.post(
        f"/api/events/{shop.id}/purchase",
        headers=auth(participant),
        data={"variant_index": "0", "quantity": "1"},
        files={"payment_proof": ("proof.png", b"\x89PNG fake", "image/png")},
    )
    assert response.status_code == 200
    order = response.json()["registration"]
    assert order["payment_approval_status"] == "pending"

    response = await client.get("/api/organizer/merchandise-orders?status=pending", headers=auth(organizer))
    assert [o["id"] for o in response.json()] == [order["id"]]
    assert response.json()[0]["payment_proof_url"].startswith("/uploads/payment-proofs/")

    response = await client.put(f"/api/organizer/merchandise-orders/{order['id']}/approve", headers=auth(organizer))
    assert response.status_code == 200

    response = await client.put(f"/api/organizer/merchandise-orders/{order['id']}/approve", headers=auth(organizer))
    assert response.status_code == 409
    assert response.json()["detail"]["reason"] == "ALREADY_PROCESSED"


async def test_purchase_without_proof_is_rejected(client, make_user, make_event, auth):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user()
    shop = await make_event(organizer, event_type=EventType.MERCHANDISE)

    response = await client.post(
        f"/api/events/{shop.id}/purchase", headers=auth(participant), data={"variant_index": "0"}
    )
    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "PAYMENT_PROOF_REQUIRED"


async def test_admin_creates_organizer_who_can_log_in(client, make_user, auth, outbound):
    admin = await make_user(UserRole.ADMIN)

    response = await client.post("/api/admin/organizers", headers=auth(admin), json={"organizer_name": "Film Club"})
    assert response.status_code == 200
    credentials = response.json()
    assert credentials["email"] == "film_club@felicity.org"

    response = await client.post(
        "/api/auth/login",
        json={"email": credentials["email"], "password": credentials["temporary_password"]},
    )
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "organizer"


async def test_unapproved_organizer_login_is_forbidden(client, make_user):
    organizer = await make_user(UserRole.ORGANIZER, is_approved=False)
    response = await client.post("/api/auth/login", json={"email": organizer.email, "password": PASSWORD})
    assert response.status_code == 403


async def test_forum_and_feedback_routes(client, make_user, make_event, auth):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user()
    outsider = await make_user()
    event = await make_event(organizer)

    response = await client.post(f"/api/events/{event.id}/register", headers=auth(participant))
    assert response.status_code == 200

    response = await client.post(
        f"/api/events/{event.id}/forum", headers=auth(participant), json={"content": "Is parking available?"}
    )
    assert response.status_code == 200
    message = response.json()["forum_message"]
    assert message["author"]["role"] == "participant"

    response = await client.get(f"/api/events/{event.id}/forum", headers=auth(outsider))
    assert response.status_code == 403

    response = await client.post(
        f"/api/events/{event.id}/forum/{message['id']}/react",
        headers=auth(organizer),
        json={"reaction_type": "thumbsup"},
    )
    assert response.json()["reactions"] == [{"user_id": organizer.id, "type": "thumbsup"}]

    response = await client.put(f"/api/events/{event.id}/forum/{message['id']}/pin", headers=auth(organizer))
    assert response.json()["is_pinned"] is True

    response = await client.post(
        f"/api/events/{event.id}/feedback", headers=auth(participant), json={"rating": 5, "comment": "Loved it"}
    )
    assert response.status_code == 201

    response = await client.get(f"/api/events/{event.id}/feedback/stats", headers=auth(organizer))
    assert response.json()["total_feedbacks"] == 1
    assert response.json()["rating_distribution"]["5"] == 1

    response = await client.get(f"/api/events/{event.id}/feedback", headers=auth(organizer))
    assert response.json()[0]["comment"] == "Loved it"
    assert "participant_id" not in response.json()[0]


async def test_followed_organizers_load_on_every_request(client, make_user, make_event, auth):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user(areas_of_interest=["coding"])
    event = await make_event(organizer)

    response = await client.post(f"/api/participant/follow/{organizer.id}", headers=auth(participant))
    assert response.status_code == 200

    response = await client.post("/api/auth/login", json={"email": participant.email, "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["user"]["followed_organizer_ids"] == [organizer.id]

    response = await client.get("/api/auth/me", headers=auth(participant))
    assert response.json()["followed_organizer_ids"] == [organizer.id]

    response = await client.get("/api/participant/profile", headers=auth(participant))
    assert [o["id"] for o in response.json()["followed_organizers"]] == [organizer.id]

    response = await client.get("/api/events/?sort_by=relevant", headers=auth(participant))
    assert response.status_code == 200
    assert [(e["id"], e["relevance_score"]) for e in response.json()] == [(event.id, 30)]

    response = await client.get("/api/events/recommended", headers=auth(participant))
    assert response.status_code == 200
    assert [e["id"] for e in response.json()] == [event.id]
