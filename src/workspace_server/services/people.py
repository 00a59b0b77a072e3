"""Google People API lookups."""

import logging

from workspace_server.errors import ToolInputError
from workspace_server.services.base import (
    PEOPLE_API_BASE,
    BaseService,
    ToolResult,
    json_result,
    service_operation,
)

logger = logging.getLogger(__name__)

PERSON_FIELDS = "names,emailAddresses"
DIRECTORY_SOURCES = [
    "DIRECTORY_SOURCE_TYPE_DOMAIN_CONTACT",
    "DIRECTORY_SOURCE_TYPE_DOMAIN_PROFILE",
]


class PeopleService(BaseService):
    """Profile lookups for the signed-in user and their directory."""

    @service_operation("people.get_user_profile")
    async def get_user_profile(
        self, user_id: str | None = None, email: str | None = None
    ) -> ToolResult:
        """Look up a profile by person ID or by email address.

        Args:
            user_id: Person ID, with or without the ``people/`` prefix.
            email: Address to search for in the domain directory.

        Returns:
            JSON ``{results: [{person}]}`` for an ID lookup, the raw
            directory search response for an email lookup.
        """
        if user_id:
            resource_name = user_id if user_id.startswith("people/") else f"people/{user_id}"
            logger.info(f"Getting profile {resource_name}")
            person = await self._make_request(
                "GET",
                f"{PEOPLE_API_BASE}/{resource_name}",
                params={"personFields": PERSON_FIELDS},
            )
            return json_result({"results": [{"person": person}]})

        if email:
            logger.info(f"Searching directory for {email}")
            response = await self._make_request(
                "GET",
                f"{PEOPLE_API_BASE}/people:searchDirectoryPeople",
                params={
                    "query": email,
                    "readMask": PERSON_FIELDS,
                    "sources": DIRECTORY_SOURCES,
                },
            )
            return json_result(response)

        raise ToolInputError("Either userId or email must be provided.")

    @service_operation("people.get_me")
    async def get_me(self) -> ToolResult:
        """Get the signed-in user's profile."""
        person = await self._make_request(
            "GET", f"{PEOPLE_API_BASE}/people/me", params={"personFields": PERSON_FIELDS}
        )
        return json_result(person)
