import asyncio
import logging
from typing import Any

import aiohttp

from core.exceptions import DomainResolutionException


class TezosDomainsService:
    """
    Reverse domain lookup through the Tezos Domains GraphQL API.

    Parameters
    ----------
    api_url : str
        GraphQL endpoint
    logger : logging.Logger
        Logger instance
    timeout : float
        Total request timeout in seconds
    """

    REVERSE_RECORD_QUERY = """
    query ReverseRecord($address: String!) {
      reverseRecord(address: $address) {
        domain {
          name
        }
      }
    }
    """

    def __init__(self, api_url: str, logger: logging.Logger, timeout: float = 10.0):
        self.api_url = api_url
        self.logger = logger
        self.timeout = timeout

    async def get_domain_from_address(self, address: str) -> str:
        """
        Resolve the reverse record of an address.

        Parameters
        ----------
        address : str
            Account address

        Returns
        -------
        str
            Domain name, empty when the address has none

        Raises
        ------
        DomainResolutionException
            On transport errors, non-200 answers and GraphQL errors
        """
        payload = {
            "query": self.REVERSE_RECORD_QUERY,
            "variables": {"address": address}
        }

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(self.api_url, json=payload) as response:
                    if response.status != 200:
                        raise DomainResolutionException(f"error.domains.http_{response.status}")
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DomainResolutionException() from e

        domain = self.extract_domain(data)
        self.logger.debug(f"Reverse record for {address}: {domain or '-'}")
        return domain

    @staticmethod
    def extract_domain(data: Any) -> str:
        """
        Pull the domain name out of a GraphQL answer.

        Parameters
        ----------
        data : Any
            Decoded JSON body

        Returns
        -------
        str
            Domain name or empty string

        Raises
        ------
        DomainResolutionException
            If the answer carries GraphQL errors or is not an object
        """
        if not isinstance(data, dict) or data.get("errors"):
            raise DomainResolutionException()
        record = (data.get("data") or {}).get("reverseRecord") or {}
        domain = record.get("domain") or {}
        return domain.get("name") or ""
