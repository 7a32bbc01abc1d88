"""Initial schema: registries and the user assignment store."""

from __future__ import annotations
from typing import Union, Sequence

from alembic import op
import sqlalchemy as sa
from context_access.models.types import IdType

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _is_deleted() -> sa.Column:
    return sa.Column("is_deleted", sa.Boolean(), server_default=sa.false(), nullable=False)


def upgrade() -> None:
    """Registries, then user_assignments with its partial unique index."""
    op.create_table(
        "organizations",
        sa.Column("id", IdType, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        _is_deleted(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_organizations")),
    )
    op.create_table(
        "users",
        sa.Column("id", IdType, autoincrement=True, nullable=False),
        sa.Column("org_id", IdType, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("is_super_admin", sa.Boolean(), nullable=False),
        _is_deleted(),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"], name=op.f("fk_users_org_id_organizations")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
    )
    op.create_index("ix_users_org", "users", ["org_id"], unique=False)
    op.create_table(
        "roles",
        sa.Column("id", IdType, autoincrement=True, nullable=False),
        sa.Column("org_id", IdType, nullable=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        _is_deleted(),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"], name=op.f("fk_roles_org_id_organizations")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_roles")),
    )
    op.create_table(
        "locations",
        sa.Column("id", IdType, autoincrement=True, nullable=False),
        sa.Column("org_id", IdType, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        _is_deleted(),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"], name=op.f("fk_locations_org_id_organizations")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_locations")),
    )
    op.create_index("ix_locations_org", "locations", ["org_id"], unique=False)
    op.create_table(
        "projects",
        sa.Column("id", IdType, autoincrement=True, nullable=False),
        sa.Column("org_id", IdType, nullable=False),
        sa.Column("location_id", IdType, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        _is_deleted(),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"], name=op.f("fk_projects_org_id_organizations")),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"], name=op.f("fk_projects_location_id_locations")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_projects")),
    )
    op.create_index("ix_projects_org", "projects", ["org_id"], unique=False)
    op.create_index("ix_projects_location", "projects", ["location_id"], unique=False)
    op.create_table(
        "user_assignments",
        sa.Column("id", IdType, autoincrement=True, nullable=False),
        sa.Column("user_id", IdType, nullable=False),
        sa.Column("role_id", IdType, nullable=False),
        sa.Column("context_type", sa.String(length=32), nullable=False),
        sa.Column("context_id", IdType, nullable=False),
        sa.Column("trade_specialization", sa.String(length=120), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        sa.Column("valid_from", sa.Date(), nullable=True),
        sa.Column("valid_until", sa.Date(), nullable=True),
        _is_deleted(),
        *_timestamps(),
        sa.Column("created_by", IdType, nullable=True),
        sa.Column("updated_by", IdType, nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name=op.f("fk_user_assignments_user_id_users")),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], name=op.f("fk_user_assignments_role_id_roles")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_assignments")),
    )
    op.create_index("ix_user_assignments_user_context", "user_assignments", ["user_id", "context_type"], unique=False)
    op.create_index("ix_user_assignments_context", "user_assignments", ["context_type", "context_id"], unique=False)
    op.create_index(
        "uq_user_assignments_live_tuple",
        "user_assignments",
        ["user_id", "role_id", "context_type", "context_id"],
        unique=True,
        postgresql_where=sa.text("is_deleted = false"),
        sqlite_where=sa.text("is_deleted = 0"),
    )


def downgrade() -> None:
    """Drops all tables."""
    op.drop_index("uq_user_assignments_live_tuple", table_name="user_assignments")
    op.drop_index("ix_user_assignments_context", table_name="user_assignments")
    op.drop_index("ix_user_assignments_user_context", table_name="user_assignments")
    op.drop_table("user_assignments")
    op.drop_index("ix_projects_location", table_name="projects")
    op.drop_index("ix_projects_org", table_name="projects")
    op.drop_table("projects")
    op.drop_index("ix_locations_org", table_name="locations")
    op.drop_table("locations")
    op.drop_table("roles")
    op.drop_index("ix_users_org", table_name="users")
    op.drop_table("users")
    op.drop_table("organizations")
