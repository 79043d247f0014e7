from __future__ import annotations

import pytest

from conftest import TEST_PROVIDER, FakePipelineFactory, ScriptedTransport, build_client
from jobs import ContentStore, JobQueue, JobStore
from server import create_app

WEBSITE = {
    "id": "site-1",
    "brandName": "Northwind",
    "brandUrl": "https://northwind.io",
    "niche": "marketing agency software",
    "keywords": "crm for agencies, client portals",
}


@pytest.fixture
def queue(clock):
    return JobQueue(
        JobStore(clock=clock),
        ContentStore(clock=clock),
        client=build_client(ScriptedTransport([])),
        provider=TEST_PROVIDER,
        clock=clock,
        pipeline_factory=FakePipelineFactory(),
    )


@pytest.fixture
def client(queue):
    app = create_app(queue, start_worker=False)
    app.config.update(TESTING=True)
    return app.test_client()


@pytest.fixture
def website(client):
    response = client.post("/api/websites", json=WEBSITE)
    assert response.status_code == 201
    return response.get_json()["website"]


def test_create_website_registers_keywords(client, queue, website):
    assert website["id"] == "site-1"
    keywords = sorted(record.keyword for record in queue.content.keywords_for("site-1"))
    assert keywords == ["client portals", "crm for agencies"]


def test_create_website_requires_brand(client):
    response = client.post("/api/websites", json={"brandName": "Northwind"})
    assert response.status_code == 400
    assert "brandUrl" in response.get_json()["error"]["message"]


def test_invalid_json_body_is_rejected(client):
    response = client.post("/api/websites", data="{not json", content_type="application/json")
    assert response.status_code == 400
    assert response.get_json()["error"]["message"] == "Invalid JSON body"


def test_generate_queues_job_and_reports_status(client, queue, website):
    response = client.post("/api/websites/site-1/generate", json={"keyword": "crm for agencies"})
    assert response.status_code == 202
    body = response.get_json()
    assert body["status"] == "QUEUED"

    status = client.get(f"/api/jobs/{body['jobId']}").get_json()
    assert status == {"id": body["jobId"], "status": "QUEUED", "currentStep": None, "progress": 0}

    queue.process_next()
    status = client.get(f"/api/jobs/{body['jobId']}").get_json()
    assert status["status"] == "COMPLETED"
    assert status["progress"] == 100
    article_id = status["output"]["blogPostId"]

    article = client.get(f"/api/websites/site-1/articles/{article_id}")
    assert article.status_code == 200
    assert article.get_json()["slug"] == "crm-for-agencies"
    assert client.get(f"/api/websites/other/articles/{article_id}").status_code == 404


def test_generate_with_keyword_id(client, queue, website):
    record = queue.content.add_keyword("site-1", "agency reporting")
    response = client.post("/api/websites/site-1/generate", json={"keywordId": record.id})
    assert response.status_code == 202
    job = queue.jobs.get(response.get_json()["jobId"])
    assert job.input["keyword"] == "agency reporting"

    missing = client.post("/api/websites/site-1/generate", json={"keywordId": "nope"})
    assert missing.status_code == 404


def test_generate_validates_input(client, website):
    response = client.post(
        "/api/websites/site-1/generate", json={"keyword": "crm", "contentLength": "enormous"}
    )
    assert response.status_code == 400
    assert "contentLength" in response.get_json()["error"]["message"]


def test_unknown_website_and_job_are_404(client):
    assert client.post("/api/websites/nope/generate", json={"keyword": "crm"}).status_code == 404
    response = client.get("/api/jobs/missing")
    assert response.status_code == 404
    assert response.get_json()["error"]["code"] == 404


def test_retry_only_applies_to_failed_jobs(client, queue, website):
    job_id = client.post("/api/websites/site-1/generate", json={"keyword": "crm"}).get_json()["jobId"]
    assert client.post(f"/api/jobs/{job_id}/retry").status_code == 409

    queue.jobs.claim(job_id)
    queue.fail(job_id, "provider down")
    response = client.post(f"/api/jobs/{job_id}/retry")
    assert response.status_code == 202
    assert response.get_json()["status"] == "QUEUED"
    assert client.post("/api/jobs/missing/retry").status_code == 404


def test_suggest_and_cluster_jobs_accept_empty_body(client, website):
    suggest = client.post("/api/websites/site-1/keywords/suggest")
    cluster = client.post("/api/websites/site-1/clusters", json={"seedKeyword": "agency crm"})
    assert suggest.status_code == 202
    assert cluster.status_code == 202


def test_links_and_keywords_endpoints(client, queue, website):
    bad = client.post("/api/websites/site-1/links", json={"links": "not-a-list"})
    assert bad.status_code == 400

    links = client.post(
        "/api/websites/site-1/links",
        json={"links": [{"keyword": "client portal", "url": "https://northwind.io/portal"}, {"keyword": ""}]},
    )
    assert links.get_json() == {"links": [{"keyword": "client portal", "url": "https://northwind.io/portal"}]}

    added = client.post("/api/websites/site-1/keywords", json={"keywords": ["Agency SEO", "agency seo"]})
    assert added.status_code == 201
    assert [item["keyword"] for item in added.get_json()["keywords"]] == ["Agency SEO"]


def test_health_reports_checks(client):
    response = client.get("/api/health")
    body = response.get_json()
    assert response.status_code == 200
    assert body["ok"] is True
    assert body["checks"]["job_worker"]["message"] == "not started"
    assert body["checks"]["job_queue"]["message"] == "Queued jobs: 0"
    assert "te***-key" in body["checks"]["provider_key"]["message"]


def test_trace_id_is_echoed_and_metrics_exposed(client, website):
    client.post("/api/websites/site-1/generate", json={"keyword": "crm"})
    response = client.get("/api/metrics", headers={"X-Trace-Id": "trace-123"})
    assert response.headers["X-Trace-Id"] == "trace-123"
    assert response.get_json()["jobs.enqueued_total"] >= 1
