import logging

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError
from retry import retry

RETRIES_NUMBER = 3
REGION = 'us-east-1'

# Calls made through the clients get a single attempt
CLIENT_CONFIG = Config(retries={'total_max_attempts': 1})


class AWSWrapper:
    """
    Creates boto3 sessions and clients, retrying transient failures.

    Retries only cover session and client creation, which happens while a
    backend is constructed. API calls made through the clients are not retried.
    Credentials come from the SSO profile when one is named, otherwise from
    the default boto3 credential chain.
    """

    def __init__(self, sso_profile_name: str = None, region_name: str = REGION):
        self._region_name = region_name
        self._session = self._create_boto_session(sso_profile_name)

    @retry(exceptions=ClientError, tries=RETRIES_NUMBER, delay=3)
    def _create_boto_session(self, sso_profile_name: str = None):
        logging.debug("Creating boto3 session via " +
                      ("SSO profile name" if sso_profile_name else "default credential chain"))
        return boto3.session.Session(profile_name=sso_profile_name, region_name=self._region_name)

    @retry(exceptions=ClientError, tries=RETRIES_NUMBER, delay=3)
    def create_aws_client(self, service_name: str):
        """
        Create a boto3 client with retry capability.

        Args:
            service_name: AWS service name ('autoscaling', 'ec2', etc.)

        Returns:
            Boto3 client for the requested service
        """
        logging.debug(f'creating aws client for: {service_name}')
        return self._session.client(service_name=service_name, config=CLIENT_CONFIG)
