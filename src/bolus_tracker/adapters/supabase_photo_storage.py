"""Supabase Storage bucket for meal photos."""

from dataclasses import dataclass

from supabase import Client

from bolus_tracker.services.photos import PhotoStorage


@dataclass
class SupabasePhotoStorage(PhotoStorage):
    """Supabase Storage implementation for meal photos."""

    client: Client
    bucket: str

    def upload(self, path: str, content: bytes, content_type: str) -> str | None:
        """Upload a photo and return its public URL."""
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            path=path,
            file=content,
            file_options={"content-type": content_type, "upsert": "true"},
        )
        return bucket.get_public_url(path) or None
