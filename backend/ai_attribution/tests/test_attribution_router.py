"""Tests for the attribution and health endpoints.

WHAT: POST /attribution/classify and GET /health
WHY: The classify endpoint is how merchants check custom rules; it must run
     the same chain as ingestion, including UTM extraction from URLs

REFERENCES:
  - ai_attribution/routers/attribution.py
  - ai_attribution/main.py: /health
"""


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestClassifyEndpoint:
    def test_domain_conflict(self, client):
        response = client.post(
            "/attribution/classify",
            json={
                "referrer": "https://chatgpt.com/",
                "landing_page": "https://shop.example.com/?utm_source=perplexity",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ai_source"] == "ChatGPT"
        assert body["confidence"] == "high"
        assert body["confidence_score"] == 80
        assert body["stage"] == "domain"
        assert "perplexity" in body["detection"]
        assert body["signals"] == ["referrer matched chatgpt.com", "utm_source=perplexity"]

    def test_no_signal(self, client):
        response = client.post("/attribution/classify", json={"referrer": "https://www.google.com/"})

        body = response.json()
        assert body["ai_source"] is None
        assert body["stage"] == "no_signal"
        assert body["confidence_score"] == 0

    def test_note_attributes_and_language(self, client):
        response = client.post(
            "/attribution/classify",
            json={
                "note_attributes": [{"name": "ai_source", "value": "gemini"}],
                "language": "中文",
            },
        )

        body = response.json()
        assert body["ai_source"] == "Gemini"
        assert body["stage"] == "note_attributes"
        assert body["detection"].startswith("备注属性")

    def test_utm_medium_only(self, client):
        response = client.post("/attribution/classify", json={"utm_medium": "llm"})

        body = response.json()
        assert body["ai_source"] is None
        assert body["stage"] == "utm_medium"
        assert body["confidence"] == "low"

    def test_invalid_body_is_rejected(self, client):
        response = client.post("/attribution/classify", json={"tags": "not-a-list"})

        assert response.status_code == 422
