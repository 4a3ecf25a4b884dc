from __future__ import annotations

from redis import Redis
from rq import Queue
from rq.job import Job

from market_data.jobs.persist import run_persist_quotes
from market_data.schemas.quote import Quote


def get_redis_connection(redis_url: str) -> Redis:
    return Redis.from_url(redis_url)


def get_queue(redis_url: str, name: str) -> Queue:
    return Queue(name=name, connection=get_redis_connection(redis_url))


def enqueue_persist_quotes(queue: Queue, quotes: list[Quote]) -> Job:
    payload = [quote.model_dump(mode="json") for quote in quotes]
    return queue.enqueue(run_persist_quotes, quotes=payload)
