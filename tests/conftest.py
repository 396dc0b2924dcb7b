import pytest
import requests

import youtube_tool


class FakeResponse:
    def __init__(self, payload: dict, status_code: int = 200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error: Forbidden")

    def json(self) -> dict:
        return self.payload


class FakeYouTubeAPI:
    """Stands in for requests.get, answering by endpoint and search parameters."""

    def __init__(self, channel_search, channels, recent, popular, videos):
        self.channel_search = channel_search
        self.channels = channels
        self.recent = recent
        self.popular = popular
        self.videos = videos
        self.fail_on = None
        self.status_on = {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        endpoint = url.rsplit("/", 1)[-1]
        self.calls.append((endpoint, dict(params or {})))
        assert timeout is not None

        if endpoint == self.fail_on:
            raise requests.ConnectionError("connection reset by peer")
        if endpoint in self.status_on:
            return FakeResponse({}, status_code=self.status_on[endpoint])

        if endpoint == "search":
            if params["type"] == "channel":
                items = self.channel_search[:params["maxResults"]]
            elif params["order"] == "date":
                items = self.recent
            else:
                items = self.popular
            return FakeResponse({"items": items})
        if endpoint == "channels":
            return FakeResponse({"items": self.channels})
        if endpoint == "videos":
            ids = params["id"].split(",")
            return FakeResponse({"items": [v for v in self.videos if v["id"] in ids]})
        raise AssertionError(f"unexpected endpoint {endpoint}")

    def endpoints(self) -> list:
        return [endpoint for endpoint, _ in self.calls]


def search_video(video_id: str, title: str, published_at: str) -> dict:
    return {
        "id": {"kind": "youtube#video", "videoId": video_id},
        "snippet": {
            "title": title,
            "publishedAt": published_at,
            "thumbnails": {
                "default": {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg"},
                "high": {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"},
            },
        },
    }


def video_detail(video_id: str, views: int, likes: int, comments: int, duration: str, tags: list) -> dict:
    return {
        "id": video_id,
        "snippet": {"description": f"Description of {video_id}", "tags": tags},
        "statistics": {
            "viewCount": str(views),
            "likeCount": str(likes),
            "commentCount": str(comments),
        },
        "contentDetails": {"duration": duration},
    }


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    monkeypatch.setenv("YOUTUBE_API_KEY", "test-key")
    monkeypatch.delenv("YOUTUBE_API_TIMEOUT", raising=False)


@pytest.fixture
def fake_api(monkeypatch):
    api = FakeYouTubeAPI(
        channel_search=[
            {
                "id": {"kind": "youtube#channel", "channelId": "UCrandom"},
                "snippet": {
                    "channelId": "UCrandom",
                    "title": "Random Channel",
                    "description": "Daily gaming streams",
                },
            },
            {
                "id": {"kind": "youtube#channel", "channelId": "UCpycoder"},
                "snippet": {
                    "channelId": "UCpycoder",
                    "title": "PyCoder Official",
                    "description": "Python tutorials and tech talks",
                },
            },
            {
                "id": {"kind": "youtube#channel", "channelId": "UCdatacraft"},
                "snippet": {
                    "channelId": "UCdatacraft",
                    "title": "Numbers Weekly",
                    "customUrl": "@datacraft",
                    "description": "Personal finance explained",
                },
            },
        ],
        channels=[
            {
                "id": "UCpycoder",
                "snippet": {
                    "title": "PyCoder Official",
                    "customUrl": "@pycoder",
                    "publishedAt": "2015-03-01T10:00:00Z",
                    "country": "US",
                },
                "statistics": {
                    "subscriberCount": "120000",
                    "videoCount": "3",
                    "viewCount": "1000000",
                },
                "brandingSettings": {},
            }
        ],
        recent=[
            search_video("v1", "Async deep dive", "2024-05-10T12:00:00Z"),
            search_video("v2", "Intro to asyncio", "2024-05-08T12:00:00Z"),
            search_video("v3", "Live Q&A", "2024-05-06T12:00:00Z"),
        ],
        popular=[
            search_video("v9", "Python in 100 seconds", "2020-01-01T00:00:00Z"),
            search_video("v2", "Intro to asyncio", "2024-05-08T12:00:00Z"),
        ],
        videos=[
            video_detail("v1", 1000, 90, 10, "PT10M", ["python", "tutorial"]),
            video_detail("v2", 3000, 250, 50, "PT5M30S", ["python", "asyncio"]),
            video_detail("v9", 50000, 1000, 200, "PT20M", ["python"]),
        ],
    )
    monkeypatch.setattr(youtube_tool.requests, "get", api.get)
    return api
