from abc import abstractmethod
from typing import Any

import httpx
from shared.clients.rag.models.Scroll import ScrollResult
from shared.clients.ClientInterface import ClientInterface
import json

from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_scroll(self) -> str:
        """Returns the endpoint path for scroll requests."""
        pass

    @abstractmethod
    def _get_endpoint_search(self) -> str:
        """Returns the endpoint path for vector similarity search requests."""
        pass

    @abstractmethod
    def _get_endpoint_points(self) -> str:
        """Returns the endpoint path for points upsert requests."""
        pass

    @abstractmethod
    def _get_endpoint_set_payload(self) -> str:
        """Returns the endpoint path for partial payload updates of existing points."""
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        """Returns the endpoint path for deleting points by filter."""
        pass

    @abstractmethod
    def _get_endpoint_check_collection_existence(self) -> str:
        """Returns the endpoint path for collection existence check requests."""
        pass

    @abstractmethod
    def _get_endpoint_create_collection(self) -> str:
        """Returns the endpoint path for create collection requests."""
        pass

    @abstractmethod
    def _get_endpoint_count(self) -> str:
        """Returns the endpoint path for counting points matching a filter."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_scroll_payload(self, filters: list[dict], with_payload: bool | list | dict, with_vector: bool | list, limit: int | None = None, offset: str | None = None) -> dict:
        """
        Returns the payload for scroll requests to the RAG backend.

        Args:
            filters (list[dict]): Conditions that must all match.
            with_payload (bool | list | dict): Whether to include the payload, or which payload fields to include.
            with_vector (bool | list): Whether to include the vector.
            limit (int | None): The maximum number of results to return.
            offset (str | None): Pagination cursor returned by the previous scroll page.
        """
        pass

    @abstractmethod
    def get_search_payload(self, vector: list[float], filters: list[dict], limit: int, score_threshold: float | None = None) -> dict:
        """
        Returns the payload for a similarity search.

        Args:
            vector (list[float]): The query vector.
            filters (list[dict]): Conditions that must all match.
            limit (int): Size of the candidate pool to return.
            score_threshold (float | None): Minimum similarity, if the backend should filter.
        """
        pass

    @abstractmethod
    def get_set_payload_payload(self, point_ids: list[str], payload: dict) -> dict:
        """Builds the request body that overwrites the given payload keys on existing points."""
        pass

    @abstractmethod
    def get_count_payload(self, filters: list[dict]) -> dict:
        """Builds the backend-specific request payload for a point count."""
        pass

    @abstractmethod
    def get_delete_payload(self, filters: list[dict]) -> dict:
        """Builds the backend-specific request payload for a filter-based delete."""
        pass

    @abstractmethod
    def build_match_filter(self, key: str, value: Any) -> dict:
        """Builds a single exact-match condition on a payload key (dotted paths allowed)."""
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_scroll_content(self, raw_response: dict) -> dict:
        """
        Extracts the relevant content from a raw scroll response.

        Returns:
            dict: A dict with keys "result", "status", "time".
        """
        pass

    @abstractmethod
    def extract_next_page_offset(self, raw_response: dict) -> str | None:
        """Extracts the pagination cursor of the next scroll page, None on the last page."""
        pass

    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[dict]:
        """
        Extracts the scored points of a similarity search response.

        Returns:
            list[dict]: Points with "id", "score", "payload" and optionally "vector".
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        """Check if the collection exists in the rag backend."""
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_check_collection_existence())
        return bool(resp.json().get("result", {}).get("exists"))

    async def do_create_collection(self, vector_size: int = 768, distance: str = "Cosine") -> httpx.Response:
        """Create the collection in the rag backend.

        Args:
            vector_size (int): The size of the vectors in the collection.
            distance (str): The distance metric for the vectors.
        """
        return await self.do_request(
            method="PUT",
            json={
                "vectors": {
                    "size": vector_size,
                    "distance": distance}},
            endpoint=self._get_endpoint_create_collection(),
            raise_on_error=True)

    async def do_upsert_points(self, points: list[dict[str, Any]]) -> httpx.Response:
        """Upsert points into the collection.
        Inserts new points or replaces existing ones if a point with the same ID already exists.

        Args:
            points (list[dict[str, Any]]): Points with "id", "vector" and "payload".
        """
        return await self.do_request(
            method="PUT",
            content=json.dumps({"points": points}),
            endpoint=self._get_endpoint_points(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True)

    async def do_search(self, vector: list[float], filters: list[dict], limit: int, score_threshold: float | None = None) -> list[dict]:
        """Run a nearest-neighbour search.

        Args:
            vector (list[float]): The query vector.
            filters (list[dict]): Conditions that must all match. Must always
                include owner_id to enforce access isolation.
            limit (int): Candidate pool size.
            score_threshold (float | None): Optional minimum similarity.

        Returns:
            list[dict]: Scored points, best first.
        """
        resp = await self.do_request(
            method="POST",
            content=json.dumps(self.get_search_payload(vector, filters, limit, score_threshold)),
            endpoint=self._get_endpoint_search(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        return self.extract_search_hits(resp.json())

    async def do_set_payload(self, point_ids: list[str], payload: dict) -> None:
        """Overwrite the given payload keys on existing points, leaving vectors untouched."""
        await self.do_request(
            method="POST",
            content=json.dumps(self.get_set_payload_payload(point_ids, payload)),
            endpoint=self._get_endpoint_set_payload(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )

    async def do_delete_points_by_filter(self, filters: list[dict]) -> None:
        """Deletes all points matching the given filter.

        Args:
            filters (list[dict]): Conditions that identify the points to delete.
                Must always include owner_id to enforce access isolation.
        """
        await self.do_request(
            method="POST",
            content=json.dumps(self.get_delete_payload(filters)),
            endpoint=self._get_endpoint_delete_points(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )

    async def do_scroll(self, filters: list[dict], with_payload: bool | list | dict, with_vector: bool | list, limit: int | None = None, offset: str | None = None) -> ScrollResult:
        """Scroll a single page from the collection.

        Returns:
            ScrollResult: The page, including next_page_offset when further pages are available.
        """
        resp = await self.do_request(
            method="POST",
            content=json.dumps(self.get_scroll_payload(filters, with_payload, with_vector, limit, offset)),
            endpoint=self._get_endpoint_scroll(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        raw_response = resp.json()
        scroll_content = self.extract_scroll_content(raw_response=raw_response)
        return ScrollResult(
            result=scroll_content.get("result", []),
            status=scroll_content.get("status", "ok"),
            time=scroll_content.get("time", 0),
            next_page_offset=self.extract_next_page_offset(raw_response),
        )

    async def do_count(self, filters: list[dict]) -> int:
        """Count the points matching the given filters."""
        resp = await self.do_request(
            method="POST",
            content=json.dumps(self.get_count_payload(filters)),
            endpoint=self._get_endpoint_count(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        return resp.json().get("result", {}).get("count", 0)
