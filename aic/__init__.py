"""AWS Instance Controller (AIC).

Long-running reconciler for a cluster's EC2 instances. Every sync period it:
 - lists the cluster's instances (filtered by the KubernetesCluster tag)
 - forces the source/destination check attribute to a configured value
 - publishes Route53 A records named by the k8s.io/dns/* instance tags

Only changes are pushed; unchanged instances and DNS names cost no API calls.
"""

__version__ = "0.5"
BUILD_REPO = "https://github.com/kopeio/aws-controller"
