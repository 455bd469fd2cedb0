import httpx
import pytest

from sol_tx_mcp.config import SolTxConfig
from sol_tx_mcp.prompts import PROMPT_REGISTRY, get_prompt, list_prompts
from sol_tx_mcp.resources import list_resources, read_resource


def test_list_prompts_shapes():
    prompts = {prompt["name"]: prompt for prompt in list_prompts()}
    assert set(prompts) == set(PROMPT_REGISTRY)
    assert prompts["minimum-amount-of-sol-for-storage"]["arguments"] == []
    assert prompts["how-much-did-this-transaction-cost"]["arguments"][0]["name"] == "signature"


def test_get_prompt_renders_arguments():
    prompt = get_prompt("what-happened-in-transaction", {"signature": "5abc"})
    message = prompt["messages"][0]
    assert message["role"] == "user"
    assert "5abc" in message["content"]["text"]


def test_get_prompt_without_arguments():
    prompt = get_prompt("minimum-amount-of-sol-for-storage")
    assert "getMinimumBalanceForRentExemption" in prompt["messages"][0]["content"]["text"]


def test_get_prompt_errors():
    assert get_prompt("nope") == {"error": "Unknown prompt: nope"}
    assert get_prompt("calculate-storage-deposit", {}) == {"error": "Missing prompt arguments: bytes"}


class FakeDocsClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.urls = []

    async def get(self, url):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.response

    async def aclose(self):
        return None


class FakeResponse:
    def __init__(self, status_code, text):
        self.status_code = status_code
        self.text = text


def test_list_resources():
    uris = [resource["uri"] for resource in list_resources()]
    assert uris == ["solana://docs/intro/installation", "solana://docs/references/clusters"]


@pytest.mark.asyncio
async def test_read_resource_fetches_markdown():
    client = FakeDocsClient(FakeResponse(200, "# Clusters"))
    config = SolTxConfig(docs_base_url="https://docs.example/content/")
    result = await read_resource("solana://docs/references/clusters", http_client=client, config=config)
    assert client.urls == ["https://docs.example/content/references/clusters.mdx"]
    assert result["contents"][0] == {
        "uri": "solana://docs/references/clusters",
        "mimeType": "text/markdown",
        "text": "# Clusters",
    }


@pytest.mark.asyncio
async def test_read_resource_reports_fetch_failures_as_text():
    http_error = await read_resource(
        "solana://docs/intro/installation", http_client=FakeDocsClient(FakeResponse(404, "missing"))
    )
    assert http_error["contents"][0]["text"] == "Error: documentation fetch returned HTTP 404"

    unreachable = await read_resource(
        "solana://docs/intro/installation", http_client=FakeDocsClient(error=httpx.ConnectError("down"))
    )
    assert unreachable["contents"][0]["text"] == "Error: ConnectError while fetching documentation"


@pytest.mark.asyncio
async def test_read_unknown_resource():
    assert await read_resource("solana://docs/other") == {"error": "Unknown resource: solana://docs/other"}
