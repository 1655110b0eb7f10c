import pytest

from ce_core.common.decisions import Decision, ErrorCode, Problem
from ce_core.common.api.exceptions import DecisionRejected, raise_for_decision, raise_for_problem
from ce_core.tests.helpers import scoped


@pytest.mark.django_db
def test_missing_scope_returns_error_envelope(api_client):
    resp = api_client.get("/api/v1/patients/")

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["message"].startswith("Missing scope headers")
    assert body["error"]["request_id"]


@pytest.mark.django_db
def test_invalid_scope_returns_error_envelope(api_client):
    resp = api_client.get(
        "/api/v1/patients/",
        HTTP_X_TENANT_ID="not-a-uuid",
        HTTP_X_FACILITY_ID="also-not-a-uuid",
    )

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["message"].startswith("Invalid scope headers")


@pytest.mark.django_db
def test_unauthenticated_request_is_enveloped(client, tenant_id, facility_id):
    resp = client.get("/api/v1/patients/", **scoped(tenant_id, facility_id))

    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "not_authenticated"


@pytest.mark.django_db
def test_serializer_errors_keep_field_details(api_client, tenant_id, facility_id):
    resp = api_client.post("/api/v1/patients/", {}, format="json", **scoped(tenant_id, facility_id))

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["message"] == "Request failed."
    assert set(body["error"]["details"]) == {"full_name", "hospital_no"}


@pytest.mark.parametrize(
    "code,http_status",
    [
        (ErrorCode.INVALID_TRANSITION, 409),
        (ErrorCode.TERMINAL_STATE, 409),
        (ErrorCode.DUPLICATE_ENROLLMENT, 409),
        (ErrorCode.NOT_READY, 409),
        (ErrorCode.VALIDATION_ERROR, 400),
    ],
)
def test_problem_codes_map_to_http_status(code, http_status):
    with pytest.raises(DecisionRejected) as exc:
        raise_for_problem(Problem(code=code, message="nope", details={"index": 2}))

    assert exc.value.status_code == http_status
    assert exc.value.problem.details == {"index": 2}


def test_accepted_decision_passes_through():
    d = Decision.accept({"status": "ok"})
    assert raise_for_decision(d) is d


def test_rejected_decision_has_no_commands_or_state():
    d = Decision.reject(ErrorCode.INVALID_TRANSITION, "no", status="Completed")
    assert not d.ok
    assert d.state is None
    assert d.commands == ()
    assert d.error.as_dict() == {"code": "InvalidTransition", "message": "no", "details": {"status": "Completed"}}
