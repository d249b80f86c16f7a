"""
Queue-driven image resize worker.

Exposes the resize transform, the job decoder, and the collector /
dispatcher / worker primitives that process jobs from SQS queues.
"""
