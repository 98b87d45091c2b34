import aioboto3
import structlog
from botocore.exceptions import ClientError
from boto3.dynamodb.conditions import Attr
from typing import Any, Optional

from gallery.config import settings
from gallery.errors import BlobStoreError, MetadataStoreError

logger = structlog.get_logger(__name__)


class BlobStore:
    """Image bytes in an S3 bucket, addressed by path."""

    def __init__(self, session: Optional[aioboto3.Session] = None, bucket: Optional[str] = None):
        self.session = session or aioboto3.Session()
        self._bucket = bucket

    @property
    def bucket(self) -> str:
        # Read lazily so SSM overrides applied at startup are honoured
        return self._bucket or settings.BUCKET_NAME

    async def upload(self, path: str, data: bytes, content_type: str = "image/jpeg") -> str:
        async with self.session.client("s3", **settings.aws_client_kwargs) as s3:
            try:
                # Never overwrite an existing object
                await s3.put_object(
                    Bucket=self.bucket,
                    Key=path,
                    Body=data,
                    ContentType=content_type,
                    IfNoneMatch="*",
                )
                return path
            except ClientError as e:
                raise BlobStoreError(f"S3 upload failed for {path}: {e}") from e

    async def remove(self, path: str):
        async with self.session.client("s3", **settings.aws_client_kwargs) as s3:
            try:
                await s3.delete_object(Bucket=self.bucket, Key=path)
            except ClientError as e:
                raise BlobStoreError(f"S3 delete failed for {path}: {e}") from e

    async def create_signed_url(self, path: str, expires_in: Optional[int] = None) -> Optional[str]:
        expires_in = expires_in or settings.SIGNED_URL_TTL_SECONDS
        async with self.session.client("s3", **settings.aws_client_kwargs) as s3:
            try:
                return await s3.generate_presigned_url('get_object',
                                                       Params={'Bucket': self.bucket,
                                                               'Key': path},
                                                       ExpiresIn=expires_in)
            except ClientError as e:
                logger.warning("signed_url_failed", path=path, error=str(e))
                return None

    async def ensure_bucket(self):
        async with self.session.client("s3", **settings.aws_client_kwargs) as s3:
            try:
                await s3.head_bucket(Bucket=self.bucket)
                logger.info("bucket_exists", bucket=self.bucket)
            except ClientError:
                logger.info("bucket_creating", bucket=self.bucket)
                await s3.create_bucket(Bucket=self.bucket)


class MetadataStore:
    """
    Key-value records in a DynamoDB table.

    Items are stored as {"key": <key>, "value": <mapping>} with "key" as the
    partition key, so prefix lookups are a filtered scan.
    """

    def __init__(self, session: Optional[aioboto3.Session] = None, table_name: Optional[str] = None):
        self.session = session or aioboto3.Session()
        self._table_name = table_name

    @property
    def table_name(self) -> str:
        return self._table_name or settings.TABLE_NAME

    async def set(self, key: str, value: dict[str, Any]):
        async with self.session.resource("dynamodb", **settings.aws_client_kwargs) as dynamo:
            table = await dynamo.Table(self.table_name)
            try:
                await table.put_item(Item={"key": key, "value": value})
            except ClientError as e:
                raise MetadataStoreError(f"DynamoDB put failed for {key}: {e}") from e

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        async with self.session.resource("dynamodb", **settings.aws_client_kwargs) as dynamo:
            table = await dynamo.Table(self.table_name)
            try:
                response = await table.get_item(Key={"key": key})
            except ClientError as e:
                raise MetadataStoreError(f"DynamoDB get failed for {key}: {e}") from e
            item = response.get("Item")
            if not item:
                return None
            return item["value"]

    async def delete(self, key: str):
        async with self.session.resource("dynamodb", **settings.aws_client_kwargs) as dynamo:
            table = await dynamo.Table(self.table_name)
            try:
                await table.delete_item(Key={"key": key})
            except ClientError as e:
                raise MetadataStoreError(f"DynamoDB delete failed for {key}: {e}") from e

    async def get_by_prefix(self, prefix: str) -> list[dict[str, Any]]:
        async with self.session.resource("dynamodb", **settings.aws_client_kwargs) as dynamo:
            table = await dynamo.Table(self.table_name)
            scan_kwargs = {"FilterExpression": Attr("key").begins_with(prefix)}
            values = []
            try:
                while True:
                    response = await table.scan(**scan_kwargs)
                    values.extend(item["value"] for item in response.get("Items", []))
                    last_key = response.get("LastEvaluatedKey")
                    if not last_key:
                        break
                    scan_kwargs["ExclusiveStartKey"] = last_key
            except ClientError as e:
                raise MetadataStoreError(f"DynamoDB scan failed for prefix {prefix}: {e}") from e
            return values

    async def ensure_table(self):
        async with self.session.resource("dynamodb", **settings.aws_client_kwargs) as dynamo:
            table = await dynamo.Table(self.table_name)
            try:
                await table.load()
                logger.info("table_exists", table=self.table_name)
            except ClientError:
                logger.info("table_creating", table=self.table_name)
                await dynamo.create_table(
                    TableName=self.table_name,
                    KeySchema=[{'AttributeName': 'key', 'KeyType': 'HASH'}],
                    AttributeDefinitions=[{'AttributeName': 'key', 'AttributeType': 'S'}],
                    ProvisionedThroughput={'ReadCapacityUnits': 5, 'WriteCapacityUnits': 5}
                )
