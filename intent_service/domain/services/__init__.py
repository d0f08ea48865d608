"""
Domain Services Package.

This package contains the services that implement the behaviour of the
Intent Service: answering chat messages, merging catalog edits, detecting
catalog changes and driving retraining. Services operate on domain models
and collaborate with the infrastructure layer through injected
dependencies.
"""
