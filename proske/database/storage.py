import boto3
from botocore.exceptions import ClientError
from supabase import Client
from proske.config import settings
import logging

logger = logging.getLogger(__name__)


class S3Storage:
    def __init__(self):
        if not all([settings.aws_access_key_id, settings.aws_secret_access_key, settings.s3_bucket_name]):
            raise ValueError("AWS S3 credentials and bucket name must be configured")

        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region
        )
        self.bucket_name = settings.s3_bucket_name

    def upload_file(self, file_content: bytes, key: str, content_type: str) -> str:
        """Upload file to S3 and return its public URL"""
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=file_content,
                ContentType=content_type
            )
            return f"https://{self.bucket_name}.s3.{settings.aws_region}.amazonaws.com/{key}"
        except ClientError as e:
            logger.error(f"Failed to upload file to S3: {str(e)}")
            raise


class MediaStorage:
    """Stores user avatars and community covers; Supabase Storage bucket unless media_backend=s3."""

    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.bucket = settings.media_bucket
        self.s3_storage = None
        if settings.media_backend == "s3":
            try:
                self.s3_storage = S3Storage()
                logger.info("S3 media storage initialized")
            except ValueError as e:
                logger.warning(f"S3 media storage not available ({e}), using Supabase Storage")

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        """Upload bytes at path (overwriting) and return the public URL"""
        if self.s3_storage:
            return self.s3_storage.upload_file(content, path, content_type)
        self.supabase.storage.from_(self.bucket).upload(
            path,
            content,
            file_options={"content-type": content_type, "upsert": "true"}
        )
        return self.supabase.storage.from_(self.bucket).get_public_url(path)
