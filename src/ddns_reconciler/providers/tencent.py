"""
Tencent Cloud DNSPod provider implementation.

This module implements DNSPod through the Tencent Cloud API 3.0 using the
official async SDK. It is selected for the DNSPod provider when no login
token is configured; "email" holds the SecretId and "password" the SecretKey.
Endpoint: dnspod.tencentcloudapi.com
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from tencentcloud.common import credential
from tencentcloud.common.exception.tencent_cloud_sdk_exception import (
    TencentCloudSDKException,
)
from tencentcloud.common.profile.client_profile import ClientProfile
from tencentcloud.common.profile.http_profile import HttpProfile
from tencentcloud.dnspod.v20210323 import dnspod_client_async, models

from ddns_reconciler.errors import ProviderLookupError, ProviderUpdateError
from ddns_reconciler.models import ProviderRecord
from ddns_reconciler.providers.base import BaseDNSProvider

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from typing import Final

    from ddns_reconciler.models import Zone


# Tencent Cloud DNSPod endpoint
DNSPOD_ENDPOINT: Final[str] = "dnspod.tencentcloudapi.com"

# Default record line
DEFAULT_RECORD_LINE: Final[str] = "默认"

# Error code returned by DescribeRecordList when nothing matches
NO_RECORD_CODE: Final[str] = "ResourceNotFound.NoDataOfRecord"


logger = logging.getLogger(__name__)


class TencentProvider(BaseDNSProvider):
    """
    Tencent Cloud DNSPod provider.

    Uses the official tencentcloud-sdk-python-dnspod SDK.

    Note: Only supports China mainland DNSPod, not international version.
    """

    @property
    def name(self) -> str:
        """Get the provider name."""
        return "tencent"

    def _create_client(self) -> dnspod_client_async.DnspodClient:
        """
        Create a Tencent Cloud DNSPod client.

        Returns
        -------
        DnspodClient
            The DNSPod client instance.
        """
        settings = self.settings
        cred = credential.Credential(settings.email, settings.password)
        http_profile = HttpProfile()
        http_profile.endpoint = settings.api_url or DNSPOD_ENDPOINT

        client_profile = ClientProfile()
        client_profile.httpProfile = http_profile

        return dnspod_client_async.DnspodClient(cred, "", client_profile)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[dnspod_client_async.DnspodClient]:
        """Open a DNSPod SDK client for one reconcile pass."""
        async with self._create_client() as client:
            yield client

    async def find_record(
        self,
        session: dnspod_client_async.DnspodClient,
        zone: Zone,
        sub_domain: str,
    ) -> ProviderRecord | None:
        """
        Find the A record of a subdomain.

        Parameters
        ----------
        session : DnspodClient
            The DNSPod client.
        zone : Zone
            The domain.
        sub_domain : str
            The subdomain label.

        Returns
        -------
        ProviderRecord | None
            The first matching record, or None.

        Raises
        ------
        ProviderLookupError
            If the SDK call fails.
        """
        request = models.DescribeRecordListRequest()
        request.Domain = zone.name
        request.Subdomain = sub_domain
        request.RecordType = "A"

        try:
            response = await session.DescribeRecordList(request)
        except TencentCloudSDKException as e:
            # "No records found" is an empty result, not an error
            if e.get_code() == NO_RECORD_CODE:
                logger.debug("[tencent] No records found for %s.%s", sub_domain, zone.name)
                return None
            msg = f"DescribeRecordList failed: {e}"
            raise ProviderLookupError(self.name, msg) from e

        logger.debug(
            "[tencent] DescribeRecordList -> RequestId: %s",
            response.RequestId,
        )

        for r in response.RecordList or []:
            if r.Name == sub_domain and r.Type == "A":
                return ProviderRecord(
                    record_id=str(r.RecordId),
                    name=sub_domain,
                    current_value=r.Value,
                    metadata={
                        "line": r.Line or DEFAULT_RECORD_LINE,
                        "ttl": r.TTL,
                    },
                )
        return None

    async def update_record(
        self,
        session: dnspod_client_async.DnspodClient,
        zone: Zone,
        record: ProviderRecord,
        ip: str,
    ) -> None:
        """
        Update an A record with a new IP.

        Parameters
        ----------
        session : DnspodClient
            The DNSPod client.
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
        request = models.ModifyRecordRequest()
        request.Domain = zone.name
        request.RecordId = int(record.record_id)
        request.SubDomain = record.name
        request.RecordType = "A"
        request.RecordLine = record.metadata.get("line", DEFAULT_RECORD_LINE)
        request.Value = ip
        request.TTL = record.metadata.get("ttl")

        try:
            response = await session.ModifyRecord(request)
        except TencentCloudSDKException as e:
            msg = f"ModifyRecord failed: {e}"
            raise ProviderUpdateError(self.name, msg) from e

        logger.debug("[tencent] ModifyRecord -> RequestId: %s", response.RequestId)
