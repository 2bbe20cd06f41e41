"""
Binary persistence for NeuralNetwork.

The format is strictly positional, with no header, version or checksum.
Every array is written as a little-endian int32 element count followed
by its elements (int32 for the topology, float64 for reals):

    topology                         int array
    weights[0][0] ... weights[0][o0-1]   one real array per output neuron
    ...
    weights[T-1][...]
    biases[0] ... biases[T-1]        one real array per transition

Reading enforces every length against the topology and fails with
DeserializationError on the first inconsistency or on premature end
of data. No partially built network is ever returned.
"""
import io
import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Union

import numpy as np

from ..exceptions import DeserializationError, ShapeMismatchError
from .feedforward import NeuralNetwork, validate_topology

logger = logging.getLogger(__name__)

INT_DTYPE = np.dtype('<i4')
REAL_DTYPE = np.dtype('<f8')


def _encode_array(values, dtype: np.dtype) -> bytes:
    array = np.ascontiguousarray(values, dtype=dtype)
    if array.ndim != 1:
        raise ValueError(f"Only 1-D arrays can be encoded, got shape {array.shape}")
    return np.array([array.size], dtype=INT_DTYPE).tobytes() + array.tobytes()


class _ArrayReader:
    """Read length-prefixed arrays from a binary stream."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream

    def _read_exact(self, size: int, what: str) -> bytes:
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = self._stream.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)

        if remaining:
            raise DeserializationError(
                f"Unexpected end of data while reading {what}: "
                f"wanted {size} bytes, got {size - remaining}"
            )
        return b''.join(chunks)

    def read_array(
        self,
        dtype: np.dtype,
        what: str,
        expected_length: int = None,
    ) -> np.ndarray:
        header = self._read_exact(INT_DTYPE.itemsize, f"length of {what}")
        length = int(np.frombuffer(header, dtype=INT_DTYPE)[0])

        if length < 0:
            raise DeserializationError(f"Negative length {length} for {what}")
        if expected_length is not None and length != expected_length:
            raise DeserializationError(
                f"Length mismatch for {what}: expected {expected_length}, got {length}"
            )

        data = self._read_exact(length * dtype.itemsize, what)
        return np.frombuffer(data, dtype=dtype).copy()


def dumps(network: NeuralNetwork) -> bytes:
    """Encode a network to bytes."""
    chunks = [_encode_array(network.layers, INT_DTYPE)]

    for matrix in network.weights:
        for row in matrix.detach().cpu().numpy():
            chunks.append(_encode_array(row, REAL_DTYPE))

    for vector in network.biases:
        chunks.append(_encode_array(vector.detach().cpu().numpy(), REAL_DTYPE))

    return b''.join(chunks)


def dump(network: NeuralNetwork, stream: BinaryIO) -> None:
    """Write a network to a binary stream."""
    stream.write(dumps(network))


def load(stream: BinaryIO) -> NeuralNetwork:
    """
    Read one network from a binary stream.

    Args:
        stream: Binary stream positioned at the start of a network.

    Returns:
        The decoded network.

    Raises:
        DeserializationError: If the data is truncated or inconsistent.
    """
    reader = _ArrayReader(stream)

    raw_layers = reader.read_array(INT_DTYPE, 'topology')
    try:
        layers = validate_topology(raw_layers.tolist())
    except ShapeMismatchError as e:
        raise DeserializationError(f"Invalid topology in stream: {e}") from e

    transitions = list(zip(layers[:-1], layers[1:]))

    weights = []
    for i, (in_features, out_features) in enumerate(transitions):
        rows = [
            reader.read_array(REAL_DTYPE, f"weights[{i}][{j}]", expected_length=in_features)
            for j in range(out_features)
        ]
        weights.append(np.stack(rows))

    biases = [
        reader.read_array(REAL_DTYPE, f"biases[{i}]", expected_length=out_features)
        for i, (_, out_features) in enumerate(transitions)
    ]

    try:
        return NeuralNetwork.from_parameters(layers, weights, biases)
    except ValueError as e:
        raise DeserializationError(f"Invalid network parameters in stream: {e}") from e


def loads(data: bytes) -> NeuralNetwork:
    """
    Decode a network from bytes.

    Raises:
        DeserializationError: If the data is truncated, inconsistent, or
            followed by trailing bytes.
    """
    stream = io.BytesIO(data)
    network = load(stream)

    trailing = len(data) - stream.tell()
    if trailing:
        raise DeserializationError(f"{trailing} trailing bytes after network data")
    return network


def save_network(network: NeuralNetwork, path: Union[str, Path]) -> Path:
    """
    Save a network to a file.

    The data is written to a temporary file in the same directory and
    then moved over the target, so an interrupted save never leaves a
    truncated network behind.

    Args:
        network: Network to save.
        path: Destination file.

    Returns:
        Path of the saved file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f'.{path.name}.', suffix='.tmp', dir=path.parent)
    try:
        with os.fdopen(fd, 'wb') as f:
            dump(network, f)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info(f"Saved network {list(network.layers)} to {path}")
    return path


def load_network(path: Union[str, Path]) -> NeuralNetwork:
    """
    Load a network from a file written by save_network().

    Raises:
        DeserializationError: If the file is truncated, inconsistent, or
            holds anything after the network.
    """
    with open(path, 'rb') as f:
        network = load(f)
        if f.read(1):
            raise DeserializationError(f"Trailing bytes after network data in {path}")

    logger.info(f"Loaded network {list(network.layers)} from {path}")
    return network
