import pytest

from src.core.exceptions import ProviderError
from src.engines.generation.schemas import Provider
from tests.helpers import make_outcome, make_png_data_url


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_root_lists_api(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["api_v1"] == "/api/v1"


@pytest.mark.asyncio
async def test_ready_checks_job_store(client):
    response = await client.get("/ready")
    assert response.status_code in (200, 503)
    assert response.json()["checks"]["job_store"] is True


@pytest.mark.asyncio
async def test_generate_sync_success(client, providers):
    providers[Provider.GEMINI].generate_image.return_value = make_outcome(make_png_data_url(), cost_units=3)

    response = await client.post(
        "/api/v1/generate",
        json={"task": "polish", "input_url": "https://cdn.example.com/shoe.png"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["provider_used"] == "gemini"
    assert data["cost_units"] == 3
    assert data["public_url"].startswith("/generated/polish-")
    assert len(data["public_urls"]) == 1


@pytest.mark.asyncio
async def test_generate_sync_failure_is_not_an_http_error(client, providers):
    providers[Provider.GEMINI].generate_image.side_effect = ProviderError("Network timeout", provider="gemini")

    response = await client.post("/api/v1/generate", json={"task": "relight"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "Network timeout"
    assert data["cost_units"] == 0


@pytest.mark.asyncio
async def test_generate_rejects_unknown_task(client):
    response = await client.post("/api/v1/generate", json={"task": "colorize"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_generate_rejects_both_inputs_for_single_image_task(client):
    response = await client.post(
        "/api/v1/generate",
        json={"task": "polish", "input_url": "https://a/1.png", "input_urls": ["https://a/2.png"]}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_async_generation_and_polling(client, service, providers):
    providers[Provider.ZAI].generate_image.return_value = make_outcome(make_png_data_url(), cost_units=6)

    response = await client.post(
        "/api/v1/generate/async",
        json={"task": "scene-gen", "prompt": "ceramic mug on a walnut desk"}
    )
    assert response.status_code == 202
    submission = response.json()
    assert submission["status"] == "pending"
    assert submission["poll_url"] == f"/api/v1/status/{submission['job_id']}"

    await service.runner.drain()

    response = await client.get(submission["poll_url"])
    assert response.status_code == 200
    job = response.json()
    assert job["status"] == "completed"
    assert job["provider_used"] == "zai"
    assert job["result"]["cost_units"] == 6
    assert job["completed_at"] is not None


@pytest.mark.asyncio
async def test_unknown_job_returns_404(client):
    response = await client.get("/api/v1/status/not-a-job")
    assert response.status_code == 404
    assert response.json()["error"] == "Job not found: not-a-job"


@pytest.mark.asyncio
async def test_remove_bg_task_endpoint(client, service, providers):
    providers[Provider.GEMINI].generate_image.return_value = make_outcome(make_png_data_url())

    response = await client.post(
        "/api/v1/tasks/remove-bg",
        json={"image": "https://cdn.example.com/shoe.png", "project_id": "proj-1"}
    )
    assert response.status_code == 202
    assert response.json()["task"] == "remove-bg"

    await service.runner.drain()

    sent = providers[Provider.GEMINI].generate_image.call_args.args[0]
    assert sent.input_url == "https://cdn.example.com/shoe.png"
    assert sent.provider_options["project_id"] == "proj-1"


@pytest.mark.asyncio
async def test_scene_gen_task_composes_presets(client, service, providers):
    providers[Provider.ZAI].generate_image.return_value = make_outcome(make_png_data_url())

    response = await client.post(
        "/api/v1/tasks/scene-gen",
        json={
            "product_image": "https://cdn.example.com/mug.png",
            "scene": "dark-mode",
            "scene_description": "steam rising"
        }
    )
    assert response.status_code == 202

    await service.runner.drain()

    sent = providers[Provider.ZAI].generate_image.call_args.args[0]
    assert sent.prompt == "Product on dark background, dramatic lighting, premium feel. steam rising"


@pytest.mark.asyncio
async def test_scene_gen_unknown_preset(client):
    response = await client.post(
        "/api/v1/tasks/scene-gen",
        json={"product_image": "https://cdn.example.com/mug.png", "style": "vaporwave"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Unknown style preset: vaporwave"


@pytest.mark.asyncio
async def test_try_on_task_sends_both_images(client, service, providers):
    providers[Provider.GEMINI].generate_image.return_value = make_outcome(make_png_data_url())

    response = await client.post(
        "/api/v1/tasks/try-on",
        json={"person_image": "https://a/person.png", "garment_image": "https://a/shirt.png"}
    )
    assert response.status_code == 202

    await service.runner.drain()

    sent = providers[Provider.GEMINI].generate_image.call_args.args[0]
    assert sent.provider_options["input_urls"] == ["https://a/person.png", "https://a/shirt.png"]

    job = (await client.get(f"/api/v1/status/{response.json()['job_id']}")).json()
    assert job["status"] == "completed"


@pytest.mark.asyncio
async def test_list_jobs(client, service, providers):
    providers[Provider.GEMINI].generate_image.side_effect = ProviderError("quota", provider="gemini")

    await client.post("/api/v1/generate/async", json={"task": "text-removal"})
    await service.runner.drain()

    response = await client.get("/api/v1/status", params={"limit": 5})
    assert response.status_code == 200
    data = response.json()
    assert data["counts"]["failed"] == 1
    assert data["jobs"][0]["error"] == "quota"


@pytest.mark.asyncio
async def test_presets_and_routing(client):
    presets = (await client.get("/api/v1/generate/presets")).json()
    assert "studio-white" in presets["scenes"]
    assert "relight_soft" in presets["enhancements"]
    assert "remove-bg" in presets["task_defaults"]

    routes = (await client.get("/api/v1/generate/routing")).json()
    by_task = {route["task"]: route for route in routes}
    assert len(by_task) == 8
    assert by_task["scene-gen"]["primary"] == "zai"
    assert by_task["relight"]["fallback"] is None


@pytest.mark.asyncio
async def test_metrics_endpoint(client, providers):
    providers[Provider.GEMINI].generate_image.return_value = make_outcome(make_png_data_url())
    await client.post("/api/v1/generate", json={"task": "upscale"})

    response = await client.get("/api/v1/metrics")
    assert response.status_code == 200
    assert "generation_requests_total" in response.text


@pytest.mark.asyncio
async def test_generate_rejects_prompt_over_limit(client):
    response = await client.post("/api/v1/generate", json={"task": "polish", "prompt": "x" * 1001})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_scene_gen_honours_raised_prompt_limit(client, service, providers, monkeypatch):
    from src.core.config import settings
    monkeypatch.setattr(settings, "MAX_PROMPT_LENGTH", 3000)
    providers[Provider.ZAI].generate_image.return_value = make_outcome(make_png_data_url())

    response = await client.post(
        "/api/v1/tasks/scene-gen",
        json={
            "product_image": "https://cdn.example.com/mug.png",
            "scene": "studio-white",
            "scene_description": "y" * 1200
        }
    )
    assert response.status_code == 202

    await service.runner.drain()

    sent = providers[Provider.ZAI].generate_image.call_args.args[0]
    assert len(sent.prompt) > 1200


@pytest.mark.asyncio
async def test_scene_gen_rejects_composed_prompt_over_limit(client):
    response = await client.post(
        "/api/v1/tasks/scene-gen",
        json={"product_image": "https://cdn.example.com/mug.png", "scene": "studio-white", "scene_description": "y" * 1000}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Prompt exceeds 1000 characters"
