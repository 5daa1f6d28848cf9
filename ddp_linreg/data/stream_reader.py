"""
Token channels and the sample stream reader.

An external process feeds training samples to a worker as an ordered sequence
of decimal ASCII tokens:

    n_sample
    repeat n_sample times:
        n_feature
        repeat n_feature times: feature_value
        label_value

This module contains:
- StreamChannel: delimiter-terminated tokens from any binary file-like object
- KafkaTokenChannel: one token per record of the worker's Kafka partition
- TokenListChannel: tokens that were already decoded by the caller
- read_samples: parses the token sequence into a worker-local collection

Example:
    >>> import io
    >>> from ddp_linreg.data.store import ObjectStore
    >>> store = ObjectStore()
    >>> dataset = store.create_named_collection("demo")
    >>> channel = StreamChannel(io.BytesIO(b"1\\n2\\n1.0\\n2.0\\n3.0\\n"))
    >>> read_samples(channel, dataset)
    2
"""

import logging
import math
import re
from collections import deque
from typing import Any, Dict, Iterable, Optional

import tqdm
from kafka import KafkaConsumer, TopicPartition

from ddp_linreg.data.samples import LabeledSample, make_vector
from ddp_linreg.errors import ProtocolError


logger = logging.getLogger(__name__)

_READ_CHUNK = 4096

_COUNT_PATTERN = re.compile(r"[+-]?[0-9]+")
_VALUE_PATTERN = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?")


class StreamChannel:
    """
    Reads delimiter-terminated tokens from a binary stream.

    The stream is assumed to be trustworthy and length-delimited: a missing
    delimiter at end of stream is reported as a truncated channel.
    """

    def __init__(self, raw, delimiter: bytes = b"\n", encoding: str = "ascii"):
        if not delimiter:
            raise ValueError("delimiter must be a non-empty byte string")
        self.raw = raw
        self.delimiter = delimiter
        self.encoding = encoding
        self._buffer = bytearray()
        self._read = getattr(raw, "read1", None) or raw.read

    def recv_token(self) -> str:
        """
        Return the next token without its delimiter.

        Raises:
            ProtocolError: If the stream ends before the next delimiter.
        """
        while True:
            end = self._buffer.find(self.delimiter)
            if end >= 0:
                token = bytes(self._buffer[:end])
                del self._buffer[:end + len(self.delimiter)]
                try:
                    return token.decode(self.encoding)
                except UnicodeDecodeError as e:
                    raise ProtocolError(f"Token is not {self.encoding} text: {token!r}") from e

            chunk = self._read(_READ_CHUNK)
            if not chunk:
                raise ProtocolError("Sample channel closed before the expected token arrived")
            self._buffer.extend(chunk)

    def close(self) -> None:
        self.raw.close()


class TokenListChannel:
    """Serves tokens from an in-memory iterable."""

    def __init__(self, tokens: Iterable[Any]):
        self._tokens = iter(tokens)

    def recv_token(self) -> str:
        try:
            token = next(self._tokens)
        except StopIteration:
            raise ProtocolError("Sample channel closed before the expected token arrived") from None
        if isinstance(token, bytes):
            try:
                return token.decode("ascii")
            except UnicodeDecodeError as e:
                raise ProtocolError(f"Token is not ascii text: {token!r}") from e
        return str(token)

    def close(self) -> None:
        pass


class KafkaTokenChannel:
    """
    Reads tokens from one Kafka partition, one token per record value.

    Each worker consumes the partition whose id equals its rank, starting at
    ``start_offset``.
    """

    def __init__(
        self,
        topic: str,
        partition: int,
        consumer_params: Dict[str, Any],
        start_offset: int = 0,
        timeout_ms: int = 3000,
        consumer: Optional[Any] = None
    ):
        self.topic = topic
        self.partition = partition
        self.consumer_params = consumer_params
        self.timeout_ms = timeout_ms
        self._buffer = deque()

        self._consumer = consumer if consumer is not None else self._create_kafka_consumer()
        topic_partition = TopicPartition(topic, partition)
        self._consumer.assign([topic_partition])
        self._consumer.seek(topic_partition, start_offset)

    def _create_kafka_consumer(self):
        """Create a Kafka consumer with the configured parameters."""
        if "bootstrap_servers" not in self.consumer_params or self.consumer_params["bootstrap_servers"] is None:
            raise KeyError("bootstrap_servers is missing or null in the KafkaConsumer's options.")

        options = {
            'client_id': f'{self.topic}-token-consumer-{self.partition}',
            'group_id': f'{self.topic}-token-consumers',
            'auto_offset_reset': 'earliest',
            'enable_auto_commit': False,
        }
        options.update(self.consumer_params)

        return KafkaConsumer(**options)

    def recv_token(self) -> str:
        """
        Return the next record value as text.

        Raises:
            ProtocolError: If polling times out before another record arrives.
        """
        while not self._buffer:
            records = self._consumer.poll(self.timeout_ms)
            if not records:
                raise ProtocolError(
                    f"Kafka partition {self.topic}:{self.partition} polling timeout before the expected token arrived"
                )
            for _, messages in records.items():
                for msg in messages:
                    self._buffer.append(msg.value)

        value = self._buffer.popleft()
        if isinstance(value, bytes):
            try:
                return value.decode("ascii")
            except UnicodeDecodeError as e:
                raise ProtocolError(f"Token is not ascii text: {value!r}") from e
        return str(value)

    def close(self) -> None:
        self._consumer.close()


def _parse_count(token: str, what: str) -> int:
    if not _COUNT_PATTERN.fullmatch(token.strip()):
        raise ProtocolError(f"Expected an integer {what}, got {token!r}")
    count = int(token.strip())
    if count < 0:
        raise ProtocolError(f"{what} must be non-negative, got {count}")
    return count


def _parse_value(token: str, what: str) -> float:
    # plain decimal notation only: no nan, inf or digit separators
    if not _VALUE_PATTERN.fullmatch(token.strip()):
        raise ProtocolError(f"Expected a decimal {what}, got {token!r}")
    value = float(token.strip())
    if not math.isfinite(value):
        raise ProtocolError(f"{what} out of range: {token!r}")
    return value


def read_samples(channel, collection, show_progress: bool = False) -> int:
    """
    Read one streamed load from ``channel`` into ``collection``.

    Every sample is appended as soon as it is parsed, so the order of the
    collection matches the order on the wire. Feature counts may differ from
    sample to sample; equalising them is the reconciler's job.

    Args:
        channel: Object with a ``recv_token() -> str`` method
        collection (Collection): Destination collection (its ``is_sparse``
            flag selects the vector representation)
        show_progress (bool): Display a tqdm progress bar. Defaults to False.

    Returns:
        int: Largest feature count seen in this stream (0 if it was empty)

    Raises:
        ProtocolError: If a token is malformed, negative where a count is
            expected, or the channel ends early.
    """
    n_sample = _parse_count(channel.recv_token(), "sample count")
    local_max_width = 0

    pbar = tqdm.tqdm(total=n_sample, desc=f'Loading {collection.name}', unit='sample', disable=not show_progress)
    try:
        for _ in range(n_sample):
            n_feature = _parse_count(channel.recv_token(), "feature count")
            x = make_vector(n_feature, collection.is_sparse)
            for index in range(n_feature):
                x.set(index, _parse_value(channel.recv_token(), "feature value"))
            y = _parse_value(channel.recv_token(), "label")

            collection.add_object(LabeledSample(x, y))
            local_max_width = max(local_max_width, n_feature)
            pbar.update(1)
    finally:
        pbar.close()

    logger.debug(f"Read {n_sample} samples into '{collection.name}', local max width {local_max_width}")
    return local_max_width
