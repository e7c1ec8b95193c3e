"""Unit tests for the provenance linker."""

import uuid
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy import func, select

from bluecarbon.kernel.errors import (
    ContentStoreUnavailable,
    Forbidden,
    InvalidAttachmentPoint,
    InvalidInput,
    NotFound,
)
from bluecarbon.kernel.models.event_log import EventLog, EventType
from bluecarbon.kernel.models.resource import ContentKind, ContentReference, ResourceStatus
from bluecarbon.kernel.permissions.access_control import Caller
from bluecarbon.kernel.permissions.matrix import LifecycleEvent
from bluecarbon.orchestration.state_machine import LifecycleManager
from bluecarbon.provenance.content_store import ContentStoreError
from bluecarbon.provenance.linker import STANDARD_LABELS, ProvenanceLinker, wrap_payload


class FakeContentStore:
    """Records uploads and hands out sequential content ids."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads: List[Dict[str, Any]] = []

    async def pin_json(self, payload: Dict[str, Any], name: str, kind: Optional[str] = None) -> str:
        if self.fail:
            raise ContentStoreError("Content store unavailable after 3 attempts (HTTP 503)")
        self.uploads.append({"payload": payload, "name": name, "kind": kind})
        return f"bafyfake{len(self.uploads):04d}"

    async def pin_file(self, data: bytes, filename: str, content_type: str = "application/octet-stream") -> str:
        if self.fail:
            raise ContentStoreError("Content store unavailable after 3 attempts (ConnectError)")
        self.uploads.append({"data": data, "name": filename, "kind": content_type})
        return f"bafyfile{len(self.uploads):04d}"


async def _resource(session, owner, steps=()):
    manager = LifecycleManager(session)
    resource = await manager.create(Caller.from_principal(owner), "Seagrass meadow", "Posidonia")
    await session.commit()
    for event, actor in steps:
        await manager.transition(resource.id, event, Caller.from_principal(actor))
        await session.commit()
    return resource


class TestAttach:

    @pytest.mark.asyncio
    async def test_append_only_across_attaches(self, db_session, alice):
        resource = await _resource(db_session, alice)
        linker = ProvenanceLinker(db_session)
        caller = Caller.from_principal(alice)

        snapshots = []
        for i in range(5):
            updated = await linker.attach(resource.id, ContentKind.DOCUMENTATION, f"bafydoc{i}", caller)
            await db_session.commit()
            snapshots.append([(r.sequence, r.content_id) for r in updated.content_references])

        # Every earlier list is a prefix of every later one
        for earlier, later in zip(snapshots, snapshots[1:]):
            assert later[: len(earlier)] == earlier
            assert len(later) == len(earlier) + 1
        assert snapshots[-1] == [(i + 1, f"bafydoc{i}") for i in range(5)]
        assert updated.version == 6

    @pytest.mark.asyncio
    async def test_reattach_is_idempotent(self, db_session, alice):
        resource = await _resource(db_session, alice)
        linker = ProvenanceLinker(db_session)
        caller = Caller.from_principal(alice)

        await linker.attach(resource.id, ContentKind.DOCUMENTATION, "bafysame", caller)
        await db_session.commit()
        again = await linker.attach(resource.id, ContentKind.DOCUMENTATION, "bafysame", caller)

        assert len(again.content_references) == 1
        assert again.version == 2

    @pytest.mark.asyncio
    async def test_blank_content_id_is_refused(self, db_session, alice):
        resource = await _resource(db_session, alice)
        resource_id = resource.id
        linker = ProvenanceLinker(db_session)

        for blank in ("", "   ", "\t\n"):
            with pytest.raises(InvalidInput):
                await linker.attach(resource_id, ContentKind.DOCUMENTATION, blank, Caller.from_principal(alice))

        count = await db_session.scalar(
            select(func.count(ContentReference.id)).where(ContentReference.resource_id == resource_id)
        )
        assert count == 0

    @pytest.mark.asyncio
    async def test_content_id_is_trimmed(self, db_session, alice):
        resource = await _resource(db_session, alice)
        updated = await ProvenanceLinker(db_session).attach(
            resource.id, ContentKind.DOCUMENTATION, "  bafytrim  ", Caller.from_principal(alice)
        )
        assert [r.content_id for r in updated.content_references] == ["bafytrim"]

    @pytest.mark.asyncio
    async def test_history_is_complete_past_one_hundred_events(self, db_session, alice):
        resource = await _resource(db_session, alice)
        linker = ProvenanceLinker(db_session)
        caller = Caller.from_principal(alice)

        for i in range(120):
            await linker.attach(resource.id, ContentKind.DOCUMENTATION, f"bafybulk{i:03d}", caller)
        await db_session.commit()

        events = await LifecycleManager(db_session).history(resource.id, caller)
        assert len(events) == 121
        assert events[0].event_type == EventType.RESOURCE_CREATED
        assert events[-1].payload["content_id"] == "bafybulk119"

    @pytest.mark.asyncio
    async def test_attach_is_audited(self, db_session, alice):
        resource = await _resource(db_session, alice)
        await ProvenanceLinker(db_session).attach(
            resource.id, ContentKind.DOCUMENTATION, "bafyaudit", Caller.from_principal(alice)
        )
        await db_session.commit()

        result = await db_session.execute(
            select(EventLog).where(EventLog.event_type == EventType.CONTENT_ATTACHED)
        )
        event = result.scalar_one()
        assert event.entity_id == resource.id
        assert event.payload["content_id"] == "bafyaudit"
        assert event.payload["kind"] == "documentation"
        assert event.payload["sequence"] == 1

    @pytest.mark.asyncio
    async def test_closed_window(self, db_session, alice, bob):
        resource = await _resource(db_session, alice, [
            (LifecycleEvent.SUBMIT, alice),
            (LifecycleEvent.BEGIN_REVIEW, bob),
        ])

        with pytest.raises(InvalidAttachmentPoint):
            await ProvenanceLinker(db_session).attach(
                resource.id, ContentKind.DOCUMENTATION, "bafylate", Caller.from_principal(alice)
            )

    @pytest.mark.asyncio
    async def test_monitoring_evidence_not_in_draft(self, db_session, alice):
        resource = await _resource(db_session, alice)

        with pytest.raises(InvalidAttachmentPoint):
            await ProvenanceLinker(db_session).attach(
                resource.id, ContentKind.MONITORING_EVIDENCE, "bafymrv", Caller.from_principal(alice)
            )

    @pytest.mark.asyncio
    async def test_open_window_wrong_role(self, db_session, alice, bob):
        resource = await _resource(db_session, alice, [
            (LifecycleEvent.SUBMIT, alice),
            (LifecycleEvent.BEGIN_REVIEW, bob),
        ])
        linker = ProvenanceLinker(db_session)

        # Owner may not attach the reviewer's report
        with pytest.raises(Forbidden):
            await linker.attach(
                resource.id, ContentKind.VERIFICATION_REPORT, "bafyreport", Caller.from_principal(alice)
            )
        # Reviewer may not attach the owner's evidence
        with pytest.raises(Forbidden):
            await linker.attach(
                resource.id, ContentKind.MONITORING_EVIDENCE, "bafymrv", Caller.from_principal(bob)
            )

        updated = await linker.attach(
            resource.id, ContentKind.VERIFICATION_REPORT, "bafyreport", Caller.from_principal(bob)
        )
        assert [r.kind for r in updated.content_references] == [ContentKind.VERIFICATION_REPORT]
        assert updated.content_references[0].attached_by == bob.id

    @pytest.mark.asyncio
    async def test_invisible_resource(self, db_session, alice, carol):
        resource = await _resource(db_session, alice)

        with pytest.raises(NotFound):
            await ProvenanceLinker(db_session).attach(
                resource.id, ContentKind.DOCUMENTATION, "bafyx", Caller.from_principal(carol)
            )

    @pytest.mark.asyncio
    async def test_credit_metadata_after_tokenize(self, db_session, alice, bob, admin):
        resource = await _resource(db_session, alice, [
            (LifecycleEvent.SUBMIT, alice),
            (LifecycleEvent.BEGIN_REVIEW, bob),
            (LifecycleEvent.APPROVE, bob),
        ])
        linker = ProvenanceLinker(db_session)

        with pytest.raises(InvalidAttachmentPoint):
            await linker.attach(
                resource.id, ContentKind.CREDIT_METADATA, "bafytoken", Caller.from_principal(admin)
            )

        await LifecycleManager(db_session).transition(
            resource.id, LifecycleEvent.TOKENIZE, Caller.from_principal(admin)
        )
        await db_session.commit()

        updated = await linker.attach(
            resource.id, ContentKind.CREDIT_METADATA, "bafytoken", Caller.system()
        )
        assert updated.status == ResourceStatus.TOKENIZED
        assert updated.content_references[0].attached_by is None


class TestPublish:

    @pytest.mark.asyncio
    async def test_publish_and_attach(self, db_session, alice):
        resource = await _resource(db_session, alice)
        store = FakeContentStore()

        updated = await ProvenanceLinker(db_session, store).publish_and_attach(
            resource.id,
            ContentKind.DOCUMENTATION,
            {"projectName": "Seagrass meadow", "area": 42},
            Caller.from_principal(alice),
        )

        assert [r.content_id for r in updated.content_references] == ["bafyfake0001"]
        upload = store.uploads[0]
        assert upload["kind"] == "documentation"
        assert upload["payload"]["projectName"] == "Seagrass meadow"
        assert upload["payload"]["resourceId"] == str(resource.id)
        assert upload["payload"]["standard"] == "Blue Carbon Registry v1.0"

    @pytest.mark.asyncio
    async def test_store_failure_attaches_nothing(self, db_session, alice):
        resource = await _resource(db_session, alice)
        resource_id = resource.id
        caller = Caller.from_principal(alice)

        with pytest.raises(ContentStoreUnavailable):
            await ProvenanceLinker(db_session, FakeContentStore(fail=True)).publish_and_attach(
                resource_id,
                ContentKind.DOCUMENTATION,
                {"projectName": "Seagrass meadow"},
                caller,
            )
        await db_session.rollback()

        count = await db_session.scalar(
            select(func.count(ContentReference.id)).where(ContentReference.resource_id == resource_id)
        )
        assert count == 0
        fetched, _ = await LifecycleManager(db_session).get(resource_id, caller)
        assert fetched.version == 1

    @pytest.mark.asyncio
    async def test_refused_attach_does_not_upload(self, db_session, alice):
        resource = await _resource(db_session, alice)
        store = FakeContentStore()

        with pytest.raises(InvalidAttachmentPoint):
            await ProvenanceLinker(db_session, store).publish_and_attach(
                resource.id,
                ContentKind.RETIREMENT_CERTIFICATE,
                {"certificate": "n/a"},
                Caller.from_principal(alice),
            )
        assert store.uploads == []

    @pytest.mark.asyncio
    async def test_publish_file(self, db_session, alice):
        resource = await _resource(db_session, alice)
        store = FakeContentStore()

        updated = await ProvenanceLinker(db_session, store).publish_file_and_attach(
            resource.id,
            ContentKind.DOCUMENTATION,
            b"%PDF-1.7 survey",
            "survey.pdf",
            "application/pdf",
            Caller.from_principal(alice),
        )
        assert updated.content_references[0].content_id == "bafyfile0001"
        assert store.uploads[0]["name"] == "survey.pdf"


def test_wrap_payload_labels():
    rid = uuid.uuid4()
    for kind in ContentKind:
        wrapped = wrap_payload(rid, kind, {"a": 1})
        assert wrapped["a"] == 1
        assert wrapped["kind"] == kind.value
        assert wrapped["version"] == "1.0"
        assert wrapped["standard"] == STANDARD_LABELS[kind]
    assert wrap_payload(rid, ContentKind.CREDIT_METADATA, {})["standard"] == "ERC-721"
