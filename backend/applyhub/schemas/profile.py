from applyhub.schemas.snapshot import SnapshotFields


class ProfileUpdate(SnapshotFields):
    pass


class ProfileResponse(SnapshotFields):
    user_id: str
    updated_at: str
