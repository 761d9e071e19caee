# Signature capture
from legen.signature.capture import SignaturePad as SignaturePad
from legen.signature.capture import signature_from_data_url as signature_from_data_url
from legen.signature.capture import signature_from_input as signature_from_input

__all__ = ["SignaturePad", "signature_from_data_url", "signature_from_input"]
