from taskboard.domain.enums import Collection

# Attribute holding the primary key of each collection's entity.
ID_ATTR = {
    Collection.USERS: "user_id",
    Collection.PROJECTS: "project_id",
    Collection.TASKS: "task_id",
    Collection.HISTORY: "history_id",
}

# Primary sort attribute for listings; ties keep insertion order.
ORDER_ATTR = {
    Collection.USERS: "created_at",
    Collection.PROJECTS: "created_at",
    Collection.TASKS: "created_at",
    Collection.HISTORY: "change_date",
}

UNIQUE_ATTRS = {
    Collection.USERS: ("email",),
}


def id_of(collection: Collection, entity) -> str:
    return str(getattr(entity, ID_ATTR[collection]))

