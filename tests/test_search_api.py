import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_search_requires_a_parameter(client: AsyncClient, counting_factory):
    response = await client.get("/search")

    assert response.status_code == 400
    assert response.json()["detail"] == "At least one search parameter is required."
    assert counting_factory.calls == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("q", ["a", "x" * 101])
async def test_search_rejects_query_length(client: AsyncClient, counting_factory, q):
    response = await client.get("/search", params={"q": q})

    assert response.status_code == 400
    assert counting_factory.calls == 0


@pytest.mark.asyncio
async def test_search_courses_by_text(client: AsyncClient, seeded):
    response = await client.get("/search", params={"q": "algebra", "type": "courses", "limit": 5})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["query"] == "algebra"
    assert [c["title"] for c in body["results"]["courses"]] == [
        "Linear Algebra", "Algebra Foundations", "Number Sense",
    ]
    assert body["results"]["lessons"] == []
    assert body["results"]["articles"] == []
    assert body["results"]["teachers"] == []


@pytest.mark.asyncio
async def test_search_by_category_without_query(client: AsyncClient, seeded):
    response = await client.get("/search", params={"category": "MATH", "type": "courses"})

    assert response.status_code == 200
    body = response.json()
    assert body["filters"]["category"] == "MATH"
    courses = body["results"]["courses"]
    assert [c["title"] for c in courses] == [
        "Geometry Essentials", "Number Sense", "Linear Algebra", "Algebra Foundations",
    ]
    assert all(c["rank"] == 0 for c in courses)


@pytest.mark.asyncio
async def test_search_with_tags_and_teacher(client: AsyncClient, seeded):
    amina = seeded["teachers"]["amina"]

    response = await client.get(
        "/search", params={"tags": "matrices, equations", "teacherId": str(amina.id)}
    )

    assert response.status_code == 200
    body = response.json()
    assert [c["title"] for c in body["results"]["courses"]] == ["Linear Algebra", "Algebra Foundations"]
    assert body["filters"]["tags"] == ["matrices", "equations"]
    assert body["filters"]["teacherId"] == str(amina.id)


@pytest.mark.asyncio
async def test_search_rejects_malformed_teacher_id(client: AsyncClient, counting_factory):
    response = await client.get("/search", params={"teacherId": "not-a-uuid"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid teacherId 'not-a-uuid'. Expected a UUID."
    assert counting_factory.calls == 0


@pytest.mark.asyncio
async def test_search_rejects_non_numeric_limit(client: AsyncClient, counting_factory):
    response = await client.get("/search", params={"q": "algebra", "limit": "ten"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid limit 'ten'. Expected a whole number."
    assert counting_factory.calls == 0


@pytest.mark.asyncio
async def test_search_embeds_course_teacher(client: AsyncClient, seeded):
    response = await client.get("/search", params={"q": "foundations", "type": "courses"})

    course = response.json()["results"]["courses"][0]
    assert course["teacher"]["name"] == "Amina Kamara"
    assert course["lesson_count"] == 2


@pytest.mark.asyncio
async def test_search_rejects_unknown_type(client: AsyncClient):
    response = await client.get("/search", params={"q": "algebra", "type": "videos"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_search_reports_unexpected_failure(client: AsyncClient, search_service, monkeypatch):
    async def explode(params):
        raise RuntimeError("boom")

    monkeypatch.setattr(search_service, "search", explode)

    response = await client.get("/search", params={"q": "algebra"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Search failed."


@pytest.mark.asyncio
async def test_suggestions_require_query(client: AsyncClient):
    response = await client.get("/search/suggestions")

    assert response.status_code == 400
    assert response.json()["detail"] == "Query parameter q is required."


@pytest.mark.asyncio
async def test_suggestions(client: AsyncClient, seeded):
    response = await client.get("/search/suggestions", params={"q": "ab"})

    assert response.status_code == 200
    suggestions = response.json()["suggestions"]
    assert suggestions["courses"] == []
    assert suggestions["lessons"] == []
    assert suggestions["articles"][0]["type"] == "article"
    assert suggestions["articles"][0]["slug"] == "abstract-thinking"


@pytest.mark.asyncio
async def test_suggestions_reject_non_numeric_limit(client: AsyncClient):
    response = await client.get("/search/suggestions", params={"q": "alg", "limit": "ten"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_short_suggestion_query_returns_empty_lists(client: AsyncClient, counting_factory):
    response = await client.get("/search/suggestions", params={"q": "a"})

    assert response.status_code == 200
    suggestions = response.json()["suggestions"]
    assert suggestions == {"courses": [], "lessons": [], "articles": [], "teachers": []}
    assert counting_factory.calls == 0


@pytest.mark.asyncio
async def test_repeated_suggestions_are_served_from_cache(client: AsyncClient, counting_factory, seeded):
    first = await client.get("/search/suggestions", params={"q": "alg"})
    calls = counting_factory.calls
    second = await client.get("/search/suggestions", params={"q": "alg"})

    assert first.json() == second.json()
    assert counting_factory.calls == calls


@pytest.mark.asyncio
async def test_suggestions_are_rate_limited(client: AsyncClient, seeded):
    for _ in range(30):
        response = await client.get("/search/suggestions", params={"q": "alg"})
        assert response.status_code == 200

    response = await client.get("/search/suggestions", params={"q": "alg"})

    assert response.status_code == 429
    assert "Retry-After" in response.headers


@pytest.mark.asyncio
async def test_filters(client: AsyncClient, seeded):
    response = await client.get("/search/filters")

    assert response.status_code == 200
    filters = response.json()["filters"]
    assert filters["categories"] == ["GENERAL", "MATH", "PHYSICS"]
    assert "drafts" not in filters["tags"]
    assert filters["levels"] == ["beginner", "intermediate", "advanced"]
