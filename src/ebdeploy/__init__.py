"""ebdeploy - deploy application bundles to AWS Elastic Beanstalk and verify them."""

__version__ = "0.1.0"
