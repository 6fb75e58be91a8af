"""
Resource Targets
================
What is being harvested: the page to open and where the paginated data
lives inside the private API payloads that page fetches.

Every target shares the same engine; only the endpoint and the two JSON
paths differ.  Presets:

    hashtag("nofilter")   -> https://instagram.com/explore/tags/nofilter
    location("213385402") -> https://instagram.com/explore/locations/213385402
    user("instagram")     -> https://instagram.com/instagram
"""

from __future__ import annotations

from dataclasses import dataclass

# Private API calls the page makes to fetch the next page of data
CATCH_URL = "https://www.instagram.com/graphql/query"

# Matching calls containing this marker fetch stories, not posts
IRRELEVANT_MARKER = "include_reel"

# Detail page for a single record (full-detail mode)
POST_URL = "https://instagram.com/p/"


@dataclass(frozen=True)
class ResourceTarget:
    """Identifies one harvest: page URL plus payload extraction paths."""
    endpoint: str
    resource_id: str
    page_query: str     # dotted path to the page_info object
    edge_query: str     # dotted path to the array of record envelopes

    @property
    def url(self) -> str:
        return self.endpoint + self.resource_id


def match_url(url: str) -> bool:
    """Match the url against the private API used for pagination."""
    return url.startswith(CATCH_URL) and IRRELEVANT_MARKER not in url


def hashtag(resource_id: str) -> ResourceTarget:
    return ResourceTarget(
        endpoint="https://instagram.com/explore/tags/",
        resource_id=resource_id,
        page_query="data.hashtag.edge_hashtag_to_media.page_info",
        edge_query="data.hashtag.edge_hashtag_to_media.edges",
    )


def location(resource_id: str) -> ResourceTarget:
    return ResourceTarget(
        endpoint="https://instagram.com/explore/locations/",
        resource_id=resource_id,
        page_query="data.location.edge_location_to_media.page_info",
        edge_query="data.location.edge_location_to_media.edges",
    )


def user(resource_id: str) -> ResourceTarget:
    return ResourceTarget(
        endpoint="https://instagram.com/",
        resource_id=resource_id,
        page_query="data.user.edge_owner_to_timeline_media.page_info",
        edge_query="data.user.edge_owner_to_timeline_media.edges",
    )


PRESETS = {
    "hashtag": hashtag,
    "location": location,
    "user": user,
}
