"""API endpoint tests"""

import pytest
from fastapi.testclient import TestClient

from snaplake.api.deps import get_chunk_sessions, get_db, get_query_engine, get_writer
from snaplake.core.errors import DelegateFailure
from snaplake.main import app
from snaplake.services.chunk_sessions import ChunkSessionStore
from snaplake.services.ledger import SnapshotLedger

from .conftest import JOB_COLUMNS

JOBS = [
    {"job_number": "J-001", "status": "complete", "quantity": 100},
    {"job_number": "J-002", "status": "in_progress", "quantity": 50},
]


class TestAPI:
    """Test API endpoints"""

    @pytest.fixture
    def sessions(self):
        return ChunkSessionStore()

    @pytest.fixture
    def client(self, db_session, writer, query_engine, sessions):
        """Test client wired to the in-memory DB and recording collaborators"""

        def override_db():
            yield db_session

        app.dependency_overrides[get_db] = override_db
        app.dependency_overrides[get_writer] = lambda: writer
        app.dependency_overrides[get_query_engine] = lambda: query_engine
        app.dependency_overrides[get_chunk_sessions] = lambda: sessions
        # No context manager: lifespan (migrations) is not run
        yield TestClient(app)
        app.dependency_overrides.clear()

    @pytest.fixture
    def registered(self, client):
        response = client.post("/tables", json={"table_name": "production_jobs", "columns": JOB_COLUMNS})
        assert response.status_code == 204
        return "production_jobs"

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"database": "ok", "last_snapshot_status": None}

    def test_readiness(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_register_and_get_table(self, client, registered):
        response = client.get(f"/tables/{registered}")
        assert response.status_code == 200
        body = response.json()
        assert body["s3_key_prefix"] == "production_jobs"
        assert body["columns"] == JOB_COLUMNS

        listed = client.get("/tables").json()
        assert [t["table_name"] for t in listed] == ["production_jobs"]

    def test_register_duplicate_targets_is_400(self, client):
        columns = [
            {"source": "a", "target": "x", "type": "VARCHAR"},
            {"source": "b", "target": "x", "type": "VARCHAR"},
        ]
        response = client.post("/tables", json={"table_name": "jobs", "columns": columns})
        assert response.status_code == 400
        assert response.json()["detail"] == 'duplicate columns[].target: "x"'

    def test_unknown_table_is_404(self, client):
        assert client.get("/tables/missing").status_code == 404
        assert client.post("/snapshots/missing", json={"data": JOBS}).status_code == 404
        assert client.post("/snapshots/missing/chunked").status_code == 404

    def test_single_shot_snapshot(self, client, writer, registered):
        response = client.post(f"/snapshots/{registered}", json={"data": JOBS})
        assert response.status_code == 200
        result = response.json()
        assert result["row_count"] == 2
        assert result["chunk_count"] is None
        assert len(writer.calls) == 1

        latest = client.get(f"/snapshots/latest/{registered}").json()
        assert latest["id"] == result["snapshot_id"]
        assert latest["status"] == "complete"
        assert latest["s3_key"] == result["s3_key"]

        assert client.get("/health").json()["last_snapshot_status"] == "complete"

    def test_writer_failure_is_502_and_recorded(self, client, writer, registered):
        writer.fail_with = DelegateFailure("bucket unreachable")

        response = client.post(f"/snapshots/{registered}", json={"data": JOBS})

        assert response.status_code == 502
        snapshots = client.get("/snapshots", params={"table_name": registered}).json()
        assert snapshots[0]["status"] == "failed"
        assert snapshots[0]["error"] == "bucket unreachable"
        assert client.get(f"/snapshots/latest/{registered}").status_code == 404

    def test_chunked_flow(self, client, registered):
        started = client.post(f"/snapshots/{registered}/chunked")
        assert started.status_code == 201
        sid = started.json()["snapshot_id"]
        assert started.json()["chunk_dir"] == f"production_jobs/chunks/{sid}"

        for expected_index in range(2):
            chunk = client.post(f"/snapshots/chunked/{sid}/chunks", json={"data": JOBS})
            assert chunk.status_code == 200
            assert chunk.json()["chunk_index"] == expected_index

        assert client.get(f"/snapshots/{sid}").json()["status"] == "pending"

        final = client.post(f"/snapshots/chunked/{sid}/finalize")
        assert final.status_code == 200
        assert final.json() == {
            "snapshot_id": sid,
            "s3_key": f"production_jobs/chunks/{sid}",
            "row_count": 4,
            "chunk_count": 2,
        }

        # Session is closed once finalized
        assert client.post(f"/snapshots/chunked/{sid}/chunks", json={"data": JOBS}).status_code == 404
        assert client.post(f"/snapshots/chunked/{sid}/finalize").status_code == 404

    def test_finalize_empty_chunked_snapshot_is_409(self, client, registered):
        sid = client.post(f"/snapshots/{registered}/chunked").json()["snapshot_id"]

        response = client.post(f"/snapshots/chunked/{sid}/finalize")

        assert response.status_code == 409
        assert client.get(f"/snapshots/{sid}").json()["status"] == "failed"

    def test_query_with_no_snapshots_is_empty(self, client, query_engine, registered):
        response = client.post("/query", json={"sql": "SELECT * FROM production_jobs"})
        assert response.status_code == 200
        assert response.json() == {"columns": [], "rows": [], "row_count": 0}
        assert query_engine.calls == []

    def test_query_delegates_with_locators(self, client, query_engine, registered):
        client.post(f"/snapshots/{registered}", json={"data": JOBS})

        response = client.post("/query", json={"sql": "SELECT COUNT(*) AS n FROM production_jobs"})

        assert response.json() == {"columns": ["n"], "rows": [{"n": 1.0}], "row_count": 1}
        assert [loc.table_name for loc in query_engine.calls[0]["locators"]] == ["production_jobs"]

    def test_delete_snapshot(self, client, registered):
        sid = client.post(f"/snapshots/{registered}", json={"data": JOBS}).json()["snapshot_id"]

        assert client.delete(f"/snapshots/{sid}").status_code == 204
        assert client.get(f"/snapshots/{sid}").status_code == 404
        # Unknown ids are a no-op
        assert client.delete(f"/snapshots/{sid}").status_code == 204

    def test_delete_table_cascades(self, client, registered):
        client.post(f"/snapshots/{registered}", json={"data": JOBS})
        client.post(f"/snapshots/{registered}", json={"data": JOBS})

        response = client.delete(f"/tables/{registered}")

        assert response.status_code == 200
        assert response.json() == {"deleted_snapshots": 2}
        assert client.get(f"/tables/{registered}").status_code == 404
        assert client.get("/snapshots").json() == []

    def test_delete_table_closes_open_chunk_sessions(self, client, writer, sessions, registered):
        client.post("/tables", json={"table_name": "orders", "columns": JOB_COLUMNS})
        sid = client.post(f"/snapshots/{registered}/chunked").json()["snapshot_id"]
        other = client.post("/snapshots/orders/chunked").json()["snapshot_id"]
        client.post(f"/snapshots/chunked/{sid}/chunks", json={"data": JOBS})

        assert client.delete(f"/tables/{registered}").json() == {"deleted_snapshots": 1}

        assert sessions.open_ids() == [other]
        writes_before = len(writer.calls)
        assert client.post(f"/snapshots/chunked/{sid}/chunks", json={"data": JOBS}).status_code == 404
        assert client.post(f"/snapshots/chunked/{sid}/finalize").status_code == 404
        assert len(writer.calls) == writes_before

    def test_finalize_with_missing_ledger_row_closes_session(self, client, db_session, sessions, registered):
        sid = client.post(f"/snapshots/{registered}/chunked").json()["snapshot_id"]
        client.post(f"/snapshots/chunked/{sid}/chunks", json={"data": JOBS})
        # Row removed outside the API, so the session is never closed by DELETE /snapshots
        SnapshotLedger(db_session).delete_snapshot(sid)

        response = client.post(f"/snapshots/chunked/{sid}/finalize")

        assert response.status_code == 404
        assert sessions.open_ids() == []
        assert client.post(f"/snapshots/chunked/{sid}/chunks", json={"data": JOBS}).status_code == 404

    def test_invalid_endpoint(self, client):
        response = client.get("/invalid")
        assert response.status_code == 404
