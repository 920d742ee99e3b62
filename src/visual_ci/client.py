from visual_ci.clients import GitHubClient, TestRunsClient
from visual_ci.config import Settings, get_settings


def get_config() -> Settings:
    return get_settings()


def get_github_client(settings: Settings | None = None) -> GitHubClient:
    settings = settings or get_config()
    return GitHubClient(token=settings.require_github_token(), base_url=settings.github_api_url)


def get_test_runs_client(settings: Settings | None = None) -> TestRunsClient:
    settings = settings or get_config()
    return TestRunsClient(api_token=settings.require_api_token(), base_url=settings.api_url)
