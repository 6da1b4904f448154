"""Resource definitions for the admin console tables."""

from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class ResourceDefinition(BaseModel):
    """Wire-level description of one CRUD resource.

    Reads go to ``list_path``; writes go to ``admin_path``, which some
    backends mount separately from the public read routes.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    list_path: str
    admin_path: str
    filter_keys: Tuple[str, ...] = ("search",)
    search_param: str = "search"
    sort_param: str = "sort"
    order_param: str = "order"
    required_fields: Tuple[str, ...] = ()
    unique_fields: Tuple[str, ...] = ()

    def query_param_for(self, key: str) -> str:
        """Map a filter key to its query-string parameter name."""
        if key == "search":
            return self.search_param
        return key

    def item_path(self, record_id: int) -> str:
        return f"{self.list_path}/{record_id}"

    def admin_item_path(self, record_id: int) -> str:
        return f"{self.admin_path}/{record_id}"


CLIENTS = ResourceDefinition(
    name="clients",
    list_path="/api/clients",
    admin_path="/api/clients/admin",
    filter_keys=("search", "industry", "isActive"),
    required_fields=("name", "industry"),
    unique_fields=("name",),
)

TESTIMONIALS = ResourceDefinition(
    name="testimonials",
    list_path="/api/testimonials",
    admin_path="/api/testimonials/admin",
    filter_keys=("search", "projectId", "clientId", "rating"),
    required_fields=("author", "content"),
)

USERS = ResourceDefinition(
    name="users",
    list_path="/api/users",
    admin_path="/api/users",
    filter_keys=("search", "role"),
    required_fields=("name", "email", "password"),
    unique_fields=("email",),
)

FAQS = ResourceDefinition(
    name="faqs",
    list_path="/api/faqs/items",
    admin_path="/api/faqs/admin/items",
    filter_keys=("search", "category"),
    required_fields=("category", "question", "answer"),
)

SERVICES = ResourceDefinition(
    name="services",
    list_path="/api/services",
    admin_path="/api/services/admin",
    filter_keys=("search", "include"),
    required_fields=("title", "description"),
)

TEAM_MEMBERS = ResourceDefinition(
    name="team-members",
    list_path="/api/team-members",
    admin_path="/api/team-members/admin",
    filter_keys=("department", "position", "speciality"),
    required_fields=("name", "position", "department"),
)

BLOG_AUTHORS = ResourceDefinition(
    name="blog-authors",
    list_path="/api/blogs/authors",
    admin_path="/api/blogs/admin/authors",
    required_fields=("name", "email"),
    unique_fields=("email",),
)

PORTFOLIO_PROJECTS = ResourceDefinition(
    name="projects",
    list_path="/api/projects",
    admin_path="/api/projects",
    filter_keys=("search", "category", "status"),
    required_fields=("title",),
)

TECHNOLOGIES = ResourceDefinition(
    name="technologies",
    list_path="/api/technologies",
    admin_path="/api/technologies/admin",
    required_fields=("name",),
    unique_fields=("name",),
)

CONTACTS = ResourceDefinition(
    name="contacts",
    list_path="/api/contacts",
    admin_path="/api/contacts/admin",
    search_param="q",
    required_fields=("title", "color"),
)

RESOURCES: Dict[str, ResourceDefinition] = {
    resource.name: resource
    for resource in (
        CLIENTS,
        TESTIMONIALS,
        USERS,
        FAQS,
        SERVICES,
        TEAM_MEMBERS,
        BLOG_AUTHORS,
        PORTFOLIO_PROJECTS,
        TECHNOLOGIES,
        CONTACTS,
    )
}


def get_resource(name: str) -> Optional[ResourceDefinition]:
    """Look up a console resource by name."""
    return RESOURCES.get(name)
