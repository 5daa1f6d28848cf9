"""
Binary export of trained parameters.

Wire format (little-endian):

    int32   n_param
    float64 param[0] .. param[n_param - 1]
"""

import numpy as np

from ddp_linreg.errors import PreconditionError, ProtocolError


COUNT_DTYPE = np.dtype("<i4")
PARAM_DTYPE = np.dtype("<f8")


def encode_params(model) -> bytes:
    """
    Serialize the parameters of ``model`` in index order.

    Raises:
        PreconditionError: If the model has no trained parameters.
    """
    n_param = model.num_param()
    if n_param <= 0:
        raise PreconditionError("Model has no trained parameters to export")

    params = np.array([model.param_at(i) for i in range(n_param)], dtype=PARAM_DTYPE)
    return np.array([n_param], dtype=COUNT_DTYPE).tobytes() + params.tobytes()


def get_params(context, name: str) -> bytes:
    """
    Export the parameters of the model named ``name`` on this worker.

    Reading does not change the model, so repeated calls without retraining
    return identical bytes.

    Raises:
        ModelLookupError: If the model is unknown.
        PreconditionError: If it has not been trained.
    """
    return encode_params(context.registry.get(name))


def decode_params(payload: bytes) -> np.ndarray:
    """
    Parse an exported parameter stream.

    Raises:
        ProtocolError: If the payload is shorter or longer than its declared count.
    """
    header = COUNT_DTYPE.itemsize
    if len(payload) < header:
        raise ProtocolError(f"Parameter stream too short for its header ({len(payload)} bytes)")

    n_param = int(np.frombuffer(payload[:header], dtype=COUNT_DTYPE)[0])
    expected = header + n_param * PARAM_DTYPE.itemsize
    if n_param < 0 or len(payload) != expected:
        raise ProtocolError(
            f"Parameter stream declares {n_param} values but holds {len(payload) - header} payload bytes"
        )
    return np.frombuffer(payload[header:], dtype=PARAM_DTYPE).copy()
