"""
EC2 monitoring automation.

Keeps a CPU and a memory CloudWatch alarm in step with every EC2 instance:
the CloudWatch agent is installed and the alarms are created when an
instance starts running, and the alarms are removed when it terminates.
"""

__version__ = "1.0.0"
