"""HTTP tests for the customer, delete request, auth and approval routes."""

import uuid

import pytest

API = "/api"


async def create_customer(client, headers, phone="13700000000", **extra):
    response = await client.post(
        f"{API}/customers", json={"name": "Zhang San", "phone": phone, **extra}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_invalid_token_is_unauthorized(client):
    response = await client.get(
        f"{API}/customers", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_register_login_flow(client, admin, auth_headers):
    response = await client.post(
        f"{API}/auth/register", json={"phone": "13800009999", "password": "hunter22"}
    )
    assert response.status_code == 201
    assert response.json()["approval_status"] == "PENDING"

    response = await client.post(
        f"{API}/auth/login", json={"phone": "13800009999", "password": "hunter22"}
    )
    assert response.status_code == 403

    response = await client.post(
        f"{API}/admin/user-approvals/13800009999/approve",
        json={"role": "CUSTOMER_AGENT"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["role"] == "CUSTOMER_AGENT"

    response = await client.post(
        f"{API}/auth/login", json={"phone": "13800009999", "password": "hunter22"}
    )
    assert response.status_code == 200
    token = response.json()["access_token"]

    response = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["phone"] == "13800009999"


@pytest.mark.asyncio
async def test_wrong_password_is_unauthorized(client, sales_a):
    response = await client.post(
        f"{API}/auth/login", json={"phone": sales_a.phone, "password": "nope-nope"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_customer_crud(client, agent, auth_headers):
    headers = auth_headers(agent)
    customer = await create_customer(client, headers, phone="137 0000 0000")
    assert customer["phone"] == "13700000000"
    assert customer["current_status"] == "NEW"
    assert customer["sales_phone"] == agent.phone

    response = await client.get(f"{API}/customers/{customer['id']}", headers=headers)
    assert response.status_code == 200

    response = await client.patch(
        f"{API}/customers/{customer['id']}",
        json={"customerAgent": "Wang Wu", "age": 35},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["customer_agent"] == "Wang Wu"
    assert response.json()["age"] == 35

    response = await client.get(f"{API}/customers", params={"q": "Zhang"}, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["page"] == 0

    response = await client.post(
        f"{API}/customers", json={"name": "Dup", "phone": "13700000000"}, headers=headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_patch_cannot_change_status_or_owner(client, agent, auth_headers):
    headers = auth_headers(agent)
    customer = await create_customer(client, headers)

    for body in ({"currentStatus": "CERTIFIED"}, {"salesPhone": "13800000004"}):
        response = await client.patch(
            f"{API}/customers/{customer['id']}", json=body, headers=headers
        )
        assert response.status_code == 400

    response = await client.get(f"{API}/customers/{customer['id']}", headers=headers)
    assert response.json()["current_status"] == "NEW"


@pytest.mark.asyncio
async def test_create_with_initial_status(client, agent, auth_headers):
    customer = await create_customer(
        client, auth_headers(agent), currentStatus="CERTIFIED"
    )
    assert customer["current_status"] == "CERTIFIED"
    assert customer["certified_at"] is not None


@pytest.mark.asyncio
async def test_sales_sees_only_own_customers(client, agent, sales_a, auth_headers):
    customer = await create_customer(client, auth_headers(agent))

    response = await client.get(f"{API}/customers/{customer['id']}", headers=auth_headers(sales_a))
    assert response.status_code == 403

    response = await client.get(f"{API}/customers", headers=auth_headers(sales_a))
    assert response.json()["total"] == 0

    response = await client.post(
        f"{API}/customers",
        json={"name": "Mine", "phone": "13700000001"},
        headers=auth_headers(sales_a),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unknown_customer_is_not_found(client, agent, auth_headers):
    response = await client.get(f"{API}/customers/{uuid.uuid4()}", headers=auth_headers(agent))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_status_transition_endpoints(client, agent, auth_headers):
    headers = auth_headers(agent)
    customer = await create_customer(client, headers)
    base = f"{API}/customers/{customer['id']}"

    response = await client.get(f"{base}/valid-transitions", headers=headers)
    assert response.status_code == 200
    assert response.json() == {
        "current_status": "NEW",
        "valid_transitions": [
            "NOTIFIED",
            "ABORTED",
            "SUBMITTED",
            "CERTIFIED",
            "CERTIFIED_ELSEWHERE",
        ],
    }

    response = await client.get(f"{base}/can-transition-to/NEW", headers=headers)
    assert response.json()["valid"] is False
    response = await client.get(f"{base}/can-transition-to/BOGUS", headers=headers)
    assert response.json()["valid"] is False

    response = await client.post(
        f"{base}/status-transition",
        json={"toStatus": "CERTIFIED_ELSEWHERE", "reason": "went to a competitor"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["current_status"] == "CERTIFIED_ELSEWHERE"

    # Terminal status
    response = await client.post(
        f"{base}/status-transition", json={"toStatus": "NOTIFIED"}, headers=headers
    )
    assert response.status_code == 400

    response = await client.get(f"{base}/valid-transitions", headers=headers)
    assert response.json()["valid_transitions"] == []

    response = await client.get(f"{base}/status-history", headers=headers)
    body = response.json()
    assert body["total"] == 2
    assert [(h["from_status"], h["to_status"]) for h in body["history"]] == [
        ("NEW", "CERTIFIED_ELSEWHERE"),
        (None, "NEW"),
    ]


@pytest.mark.asyncio
async def test_direct_delete_and_restore_are_admin_only(client, admin, agent, auth_headers):
    customer = await create_customer(client, auth_headers(agent))
    base = f"{API}/customers/{customer['id']}"

    response = await client.delete(base, headers=auth_headers(agent))
    assert response.status_code == 403

    response = await client.delete(base, headers=auth_headers(admin))
    assert response.status_code == 204

    response = await client.get(base, headers=auth_headers(agent))
    assert response.status_code == 404
    response = await client.get(f"{base}/including-deleted", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["deleted_at"] is not None

    response = await client.post(f"{base}/restore", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["deleted_at"] is None


@pytest.mark.asyncio
async def test_delete_request_workflow(client, admin, agent, auth_headers):
    customer = await create_customer(client, auth_headers(agent))
    requests = f"{API}/customer-delete-requests"

    response = await client.post(
        requests,
        json={"customerId": customer["id"], "reason": "duplicate"},
        headers=auth_headers(agent),
    )
    assert response.status_code == 201
    request = response.json()
    assert request["request_status"] == "PENDING"
    assert request["customer_name"] == "Zhang San"

    response = await client.post(
        requests,
        json={"customerId": customer["id"], "reason": "again"},
        headers=auth_headers(agent),
    )
    assert response.status_code == 400

    response = await client.get(f"{requests}/pending/count", headers=auth_headers(admin))
    assert response.json() == {"count": 1}

    response = await client.patch(
        f"{requests}/{request['id']}/approve", json={}, headers=auth_headers(agent)
    )
    assert response.status_code == 403

    response = await client.patch(
        f"{requests}/{request['id']}/approve",
        json={"reason": "confirmed"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["request_status"] == "APPROVED"
    assert response.json()["reviewed_by"] == admin.phone

    response = await client.get(
        f"{API}/customers/{customer['id']}", headers=auth_headers(agent)
    )
    assert response.status_code == 404

    response = await client.patch(
        f"{requests}/{request['id']}/reject",
        json={"rejectionReason": "too late"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400

    response = await client.get(f"{requests}/mine", headers=auth_headers(agent))
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_reject_delete_request_requires_reason(client, admin, agent, auth_headers):
    customer = await create_customer(client, auth_headers(agent))
    requests = f"{API}/customer-delete-requests"
    response = await client.post(
        requests,
        json={"customerId": customer["id"], "reason": "duplicate"},
        headers=auth_headers(agent),
    )
    request_id = response.json()["id"]

    response = await client.patch(
        f"{requests}/{request_id}/reject",
        json={"rejectionReason": "   "},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400

    response = await client.patch(
        f"{requests}/{request_id}/reject",
        json={"rejectionReason": "customer still active"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["rejection_reason"] == "customer still active"

    response = await client.get(
        f"{API}/customers/{customer['id']}", headers=auth_headers(agent)
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_user_approval_routes_require_admin(client, officer, pending_sales, auth_headers):
    response = await client.get(
        f"{API}/admin/user-approvals", headers=auth_headers(officer)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_user_approval_listing_and_history(client, admin, pending_sales, auth_headers):
    headers = auth_headers(admin)

    response = await client.get(f"{API}/admin/user-approvals", headers=headers)
    assert response.status_code == 200
    assert [u["phone"] for u in response.json()["users"]] == [pending_sales.phone]

    response = await client.post(
        f"{API}/admin/user-approvals/{pending_sales.phone}/approve",
        json={"role": "ADMIN"},
        headers=headers,
    )
    assert response.status_code == 400

    response = await client.post(
        f"{API}/admin/user-approvals/{pending_sales.phone}/reject",
        json={"reason": "unknown"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["approval_status"] == "REJECTED"

    response = await client.get(
        f"{API}/admin/user-approvals/{pending_sales.phone}/history", headers=headers
    )
    assert response.status_code == 200
    assert [e["action"] for e in response.json()] == ["user_rejected"]

    response = await client.get(f"{API}/admin/user-approvals/statistics", headers=headers)
    assert response.json()["by_status"]["REJECTED"] == 1


@pytest.mark.asyncio
async def test_non_owner_patch_is_forbidden_before_validation(
    client, agent, sales_b, auth_headers
):
    customer = await create_customer(client, auth_headers(agent))

    for body in ({"salesPhone": sales_b.phone}, {"age": 500}, {"customerType": None}):
        response = await client.patch(
            f"{API}/customers/{customer['id']}", json=body, headers=auth_headers(sales_b)
        )
        assert response.status_code == 403


@pytest.mark.asyncio
async def test_patch_null_customer_type_is_a_validation_error(client, agent, auth_headers):
    headers = auth_headers(agent)
    customer = await create_customer(client, headers)

    response = await client.patch(
        f"{API}/customers/{customer['id']}", json={"customerType": None}, headers=headers
    )
    assert response.status_code == 400
    assert "phone" not in response.json()["detail"]


@pytest.mark.asyncio
async def test_phone_available_requires_active_account(
    client, agent, pending_sales, auth_headers
):
    await create_customer(client, auth_headers(agent))

    response = await client.get(
        f"{API}/customers/phone-available",
        params={"phone": "13700000000"},
        headers=auth_headers(pending_sales),
    )
    assert response.status_code == 403

    response = await client.get(
        f"{API}/customers/phone-available",
        params={"phone": "13700000000"},
        headers=auth_headers(agent),
    )
    assert response.status_code == 200
    assert response.json() == {"phone": "13700000000", "available": False}


@pytest.mark.asyncio
async def test_recent_customers(client, agent, sales_a, auth_headers):
    first = await create_customer(client, auth_headers(agent), phone="13700000001")
    second = await create_customer(client, auth_headers(agent), phone="13700000002")

    response = await client.get(
        f"{API}/customers/recent", params={"days": 7}, headers=auth_headers(agent)
    )
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [c["id"] for c in body["customers"]] == [second["id"], first["id"]]

    response = await client.get(f"{API}/customers/recent", headers=auth_headers(sales_a))
    assert response.json()["total"] == 0
