"""Streaming multipart upload pipeline.

Parts are consumed strictly in stream order through a small state machine:

    AWAITING_KEY --key matches--> KEY_ACCEPTED --stream drained--> COMPLETED
         |                              |
         +-------- any failure ---------+--> ABORTED

A file part is only persisted in ``KEY_ACCEPTED``, so the key has to precede
every file in the client's submission order. Files written by a request that
ends ``ABORTED`` are removed again.
"""

import secrets
from collections.abc import Iterable, Iterator

from werkzeug.sansio.multipart import Data, Epilogue, Field, File, MultipartDecoder, NeedData

from uploader.core.errors import (
    BadRequestError,
    PayloadTooLargeError,
    UnauthorizedError,
    UploadError,
)
from uploader.core.logger import LogIcon, logger
from uploader.models.core import PartKind, StoredFile, UploadConfig, UploadOutcome, UploadState
from uploader.services.classifier import classify_part
from uploader.services.names import file_extension, make_random_name
from uploader.services.storage import PendingFile, StorageTransaction


class UploadPipeline:
    """Per-request upload processing. Not reusable across requests."""

    def __init__(self, config: UploadConfig, storage: StorageTransaction) -> None:
        self.config = config
        self.storage = storage
        self.state = UploadState.AWAITING_KEY
        self.redirect = True
        self.stored: list[StoredFile] = []
        self._part = PartKind.IGNORE
        self._key = bytearray()
        self._file: PendingFile | None = None

    def consume(self, chunks: Iterable[bytes], boundary: bytes) -> None:
        """Feed the body through the decoder, handling every part as it completes."""
        decoder = MultipartDecoder(boundary)
        received = 0
        held = b""
        for chunk in chunks:
            received += len(chunk)
            if received > self.config.max_body_size:
                raise PayloadTooLargeError()
            data = held + chunk
            # a CRLF split across two feeds leaks the CR into part data
            if data.endswith(b"\r"):
                data, held = data[:-1], b"\r"
            else:
                held = b""
            self._feed(decoder, data)
        self._feed(decoder, held)
        self._feed(decoder, None)

    def _feed(self, decoder: MultipartDecoder, data: bytes | None) -> None:
        if data == b"":
            return
        decoder.receive_data(data)
        for event in _events(decoder):
            self._handle(event)

    def finish(self) -> UploadOutcome:
        if not self.stored:
            return self.abort(BadRequestError("No file uploaded"))
        self.state = UploadState.COMPLETED
        return UploadOutcome(state=self.state, stored=tuple(self.stored), redirect=self.redirect)

    def abort(self, error: UploadError) -> UploadOutcome:
        self.state = UploadState.ABORTED
        log = logger.error if error.status_code >= 500 else logger.warning
        log("Upload aborted", icon=LogIcon.ERROR, status=error.status_code, reason=error.reason)
        return UploadOutcome(state=self.state, redirect=self.redirect, error=error)

    def _handle(self, event: Field | File | Data) -> None:
        match event:
            case File(name=name, filename=filename):
                self._start_part(name, filename)
            case Field(name=name):
                self._start_part(name, None)
            case Data(data=data, more_data=more_data):
                self._receive(data, more_data)

    def _start_part(self, field_name: str | None, filename: str | None) -> None:
        self._part = classify_part(field_name, filename)
        match self._part:
            case PartKind.AUTH_KEY:
                self._key.clear()
            case PartKind.REDIRECT_FLAG:
                self.redirect = False
            case PartKind.FILE_PAYLOAD:
                if self.state is not UploadState.KEY_ACCEPTED:
                    raise UnauthorizedError("No key provided as first field")
                name = make_random_name(self.config.random_name_bytes, file_extension(filename or ""))
                self._file = self.storage.create(name)

    def _receive(self, data: bytes, more_data: bool) -> None:
        match self._part:
            case PartKind.AUTH_KEY:
                self._key.extend(data)
                # a value longer than the secret can never match
                if len(self._key) > len(self.config.secret):
                    raise UnauthorizedError("Bad key")
                if not more_data:
                    self._check_key()
            case PartKind.FILE_PAYLOAD if self._file is not None:
                self._file.write(data)
                if not more_data:
                    stored = self._file.close()
                    self._file = None
                    self.stored.append(stored)
                    logger.info("Uploaded file", icon=LogIcon.UPLOAD, name=stored.name, size_kb=stored.size >> 10)

    def _check_key(self) -> None:
        if not secrets.compare_digest(bytes(self._key), self.config.secret):
            raise UnauthorizedError("Bad key")
        self.state = UploadState.KEY_ACCEPTED
        logger.info("Upload key accepted", icon=LogIcon.AUTH)


def _events(decoder: MultipartDecoder) -> Iterator[Field | File | Data]:
    """Yield decoder events until more input is needed or the body ended."""
    while True:
        try:
            event = decoder.next_event()
        except ValueError as ex:
            raise BadRequestError("Malformed multipart body") from ex
        if isinstance(event, NeedData | Epilogue):
            return
        if isinstance(event, Field | File | Data):
            yield event


def process_upload(chunks: Iterable[bytes], boundary: bytes, config: UploadConfig) -> UploadOutcome:
    """Process one multipart upload body and return its outcome.

    Stored files are kept only when the outcome is completed.
    """
    with StorageTransaction(config.storage_path, config.transfer_buffer_size) as storage:
        pipeline = UploadPipeline(config, storage)
        try:
            pipeline.consume(chunks, boundary)
        except UploadError as error:
            return pipeline.abort(error)
        outcome = pipeline.finish()
        if outcome.ok:
            storage.commit()
        return outcome
