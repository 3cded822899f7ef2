"""One-call export and import against DynamoDB."""

import logging

from dynoport.models.params import TransferParams, TransferRequest
from dynoport.models.stats import TransferOutcome
from dynoport.pipeline import Reporter, TransferPipeline
from dynoport.providers.dynamodb import DynamoDBCredentials, DynamoDBParams, DynamoDBProvider

logger = logging.getLogger(__name__)


async def run_transfer(
    request: TransferRequest,
    params: TransferParams | None = None,
    reporter: Reporter | None = None,
    *,
    profile: str | None = None,
    endpoint_url: str | None = None,
    scan_limit: int | None = None,
) -> TransferOutcome:
    """Connect to the table named by `request`, run the operation and disconnect.

    Raises `FatalServiceError` if the client cannot be created and
    `InvalidArgumentError` for empty names or a missing input file; every
    other failure is reported through the returned outcome.
    """
    credentials = DynamoDBCredentials(
        region=request.region,
        profile=profile,
        endpoint_url=endpoint_url,
    )
    provider = await DynamoDBProvider.connect(
        credentials,
        DynamoDBParams(table=request.table_name, scan_limit=scan_limit),
    )
    try:
        pipeline = TransferPipeline(provider, params, reporter)
        return await pipeline.run(request)
    finally:
        await provider.disconnect()
        logger.debug("Disconnected from DynamoDB")
