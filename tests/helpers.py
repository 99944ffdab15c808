"""Constants and builders shared by the test modules."""

from botocore.exceptions import ClientError

REGION = "us-east-1"
TOPIC_ARN = "arn:aws:sns:us-east-1:123456789012:EC2MonitoringTopic"


def client_error(code: str, operation: str = "GetCommandInvocation", message: str = "error") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)
