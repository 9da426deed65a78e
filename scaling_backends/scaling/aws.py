from typing import Dict, NamedTuple, Optional

from botocore.exceptions import BotoCoreError, ClientError

from scaling_backends.aws.wrapper import REGION, AWSWrapper
from scaling_backends.errors import ConfigurationError, ScalingError
from scaling_backends.scaling.base import ScalingBackend

NODE_POOL_ID_LABEL_KEY = 'scaling-backends.io/aws-autoscaling-group-name'


class AWSConfig(NamedTuple):
    """Connection configuration of the AWS Auto Scaling group backend."""
    region: str
    sso_profile: Optional[str]


def default_and_validate_aws_config(configuration: Dict[str, str]) -> AWSConfig:
    configuration = configuration or {}
    return AWSConfig(
        region=configuration.get('region') or REGION,
        sso_profile=configuration.get('ssoProfile') or None,
    )


class AWSBackend(ScalingBackend):
    """
    Scaling backend for node pools backed by EC2 Auto Scaling groups.

    Nodes carry the name of their Auto Scaling group in a label, which serves
    as the node pool ID. Credentials come from the usual boto3 chain or an
    SSO profile.
    """

    node_pool_id_label_key = NODE_POOL_ID_LABEL_KEY

    def __init__(self, name: str, configuration: Dict[str, str]):
        super().__init__(name)

        self._config = default_and_validate_aws_config(configuration)

        try:
            aws_wrapper = AWSWrapper(sso_profile_name=self._config.sso_profile, region_name=self._config.region)
            self._autoscaling = aws_wrapper.create_aws_client('autoscaling')
        except (BotoCoreError, ClientError) as e:
            raise ConfigurationError(f"unable to create AWS autoscaling client: {e}") from e

    @property
    def config(self) -> AWSConfig:
        return self._config

    def scale_strategy_random(self, node_pool_id, num_nodes):
        try:
            self._autoscaling.set_desired_capacity(
                AutoScalingGroupName=node_pool_id,
                DesiredCapacity=num_nodes,
                HonorCooldown=False,
            )
        except (BotoCoreError, ClientError) as e:
            raise ScalingError(f"error scaling autoscaling group {node_pool_id}: {e}",
                               node_pool_id=node_pool_id) from e

        return True
