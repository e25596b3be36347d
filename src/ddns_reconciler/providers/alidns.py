"""
Alibaba Cloud DNS (alidns) provider implementation.

This module implements the Alibaba Cloud DNS API using the official SDK.
"email" holds the AccessKey ID and "password" the AccessKey secret.
Endpoint: alidns.aliyuncs.com (unified for domestic and international).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from alibabacloud_alidns20150109 import models as alidns_models
from alibabacloud_alidns20150109.client import Client as AlidnsClient
from alibabacloud_tea_openapi import models as open_api_models
from alibabacloud_tea_util import models as util_models
from Tea.exceptions import TeaException, UnretryableException

from ddns_reconciler.errors import ProviderLookupError, ProviderUpdateError
from ddns_reconciler.models import ProviderRecord
from ddns_reconciler.providers.base import BaseDNSProvider

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from typing import Final

    from ddns_reconciler.models import Zone


# Alibaba Cloud DNS endpoint (unified)
ALIDNS_ENDPOINT: Final[str] = "alidns.aliyuncs.com"

# DescribeDomainRecords maximum page size
RECORDS_PAGE_SIZE: Final[int] = 500

_SDK_ERRORS = (TeaException, UnretryableException)


logger = logging.getLogger(__name__)


class AliDNSProvider(BaseDNSProvider):
    """
    Alibaba Cloud DNS (alidns) provider.

    Uses the official alibabacloud_alidns20150109 SDK. DescribeDomainRecords
    is a paged keyword search, so results are filtered to exact RR matches
    across every page.
    """

    @property
    def name(self) -> str:
        """Get the provider name."""
        return "alidns"

    def _create_client(self) -> AlidnsClient:
        """
        Create an Alibaba Cloud DNS client.

        Returns
        -------
        AlidnsClient
            The DNS client instance.
        """
        settings = self.settings
        config = open_api_models.Config(
            access_key_id=settings.email,
            access_key_secret=settings.password,
            endpoint=settings.api_url or ALIDNS_ENDPOINT,
        )
        return AlidnsClient(config)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AlidnsClient]:
        """Create an Alibaba Cloud DNS client for one reconcile pass."""
        yield self._create_client()

    async def find_record(
        self,
        session: AlidnsClient,
        zone: Zone,
        sub_domain: str,
    ) -> ProviderRecord | None:
        """
        Find the A record of a subdomain.

        Parameters
        ----------
        session : AlidnsClient
            The DNS client.
        zone : Zone
            The domain.
        sub_domain : str
            The host record ("@" for root).

        Returns
        -------
        ProviderRecord | None
            The first matching record, or None.

        Raises
        ------
        ProviderLookupError
            If the SDK call fails.
        """
        rr = sub_domain or "@"
        page_number = 1
        while True:
            request = alidns_models.DescribeDomainRecordsRequest(
                domain_name=zone.name,
                rrkey_word=rr,
                type="A",
                page_number=page_number,
                page_size=RECORDS_PAGE_SIZE,
            )
            try:
                response = await session.describe_domain_records_with_options_async(
                    request,
                    util_models.RuntimeOptions(),
                )
            except _SDK_ERRORS as e:
                msg = f"DescribeDomainRecords failed: {e}"
                raise ProviderLookupError(self.name, msg) from e

            logger.debug(
                "[alidns] DescribeDomainRecords page %d -> RequestId: %s",
                page_number,
                response.body.request_id,
            )

            if response.body.domain_records is None:
                return None

            records = response.body.domain_records.record or []
            for r in records:
                if r.rr == rr and r.type == "A":
                    return ProviderRecord(
                        record_id=r.record_id,
                        name=rr,
                        current_value=r.value,
                        metadata={"ttl": r.ttl, "line": r.line},
                    )

            total = response.body.total_count or 0
            if not records or page_number * RECORDS_PAGE_SIZE >= total:
                return None
            page_number += 1

    async def update_record(
        self,
        session: AlidnsClient,
        zone: Zone,  # noqa: ARG002
        record: ProviderRecord,
        ip: str,
    ) -> None:
        """
        Update an A record with a new IP.

        Parameters
        ----------
        session : AlidnsClient
            The DNS client.
        zone : Zone
            The domain.
        record : ProviderRecord
            The record to update.
        ip : str
            The new IP address.

        Raises
        ------
        ProviderUpdateError
            If the SDK call fails.
        """
        request = alidns_models.UpdateDomainRecordRequest(
            record_id=record.record_id,
            rr=record.name,
            type="A",
            value=ip,
        )
        if record.metadata.get("ttl") is not None:
            request.ttl = record.metadata["ttl"]
        if record.metadata.get("line"):
            request.line = record.metadata["line"]

        try:
            response = await session.update_domain_record_with_options_async(
                request,
                util_models.RuntimeOptions(),
            )
        except _SDK_ERRORS as e:
            msg = f"UpdateDomainRecord failed: {e}"
            raise ProviderUpdateError(self.name, msg) from e

        logger.debug(
            "[alidns] UpdateDomainRecord -> RequestId: %s",
            response.body.request_id,
        )
