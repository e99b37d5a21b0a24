from taskboard.ports.id_provider import IdProvider
import uuid


class UuidIdProvider(IdProvider):

    def new_id(self) -> str:
        return str(uuid.uuid4())
