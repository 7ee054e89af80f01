"""
tests/test_adapters.py — Unit tests for the outer ring: MongoDB patient
repository, Redis search log and the patient ingestion parser.

MongoDB collections and the Redis client are MagicMocks.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
import redis
from pymongo.errors import ServerSelectionTimeoutError

from conftest import CATARACT, SEIZURE
from core.models import AccessType, Feature, PatientSimilaritySummary
from core.patient_repository import (
    MongoPatientRepository,
    PatientRepository,
    RepositoryUnavailableError,
    patient_from_document,
    prototype_from_document,
)


def _db(**collections):
    db = {name: MagicMock() for name in ("patients", "users", "disease_profiles")}
    db.update(collections)
    return db


# ═══════════════════════════════════════════════════════════════════════════
# 1. Document conversion
# ═══════════════════════════════════════════════════════════════════════════


class TestDocumentConversion:
    def test_feature_documents(self):
        patient = patient_from_document({
            "_id": "p1",
            "owner": "alice",
            "visibility": "matchable",
            "features": [
                {"id": SEIZURE, "name": "Seizure", "qualifiers": ["onset: infantile"]},
                {"id": CATARACT, "presence": "absent"},
            ],
            "disorders": [{"id": "OMIM:312750", "name": "Rett syndrome"}],
        })
        assert patient.visibility is AccessType.MATCHABLE
        assert patient.features[0] == Feature(id=SEIZURE, name="Seizure", qualifiers=("onset: infantile",))
        assert [f.id for f in patient.present_features()] == [SEIZURE]
        assert patient.disorders[0].value == "OMIM:312750"

    def test_flat_term_lists(self):
        patient = patient_from_document({
            "_id": "p2",
            "hpo_terms": [SEIZURE],
            "excluded_hpo_terms": [CATARACT],
            "diagnosis_name": "Unknown syndrome",
        })
        assert patient.visibility is AccessType.PRIVATE
        assert [(f.id, f.presence) for f in patient.features] == [(SEIZURE, "present"), (CATARACT, "absent")]
        assert patient.disorders[0].value == "Unknown syndrome"

    def test_unknown_visibility_is_private(self):
        assert patient_from_document({"_id": "p3", "visibility": "public"}).visibility is AccessType.PRIVATE

    def test_prototype(self):
        proto = prototype_from_document({"_id": "OMIM:1", "name": "Disease one", "hpo_terms": [SEIZURE, CATARACT]})
        assert proto.visibility is AccessType.OPEN
        assert [f.id for f in proto.features] == sorted([SEIZURE, CATARACT])
        assert proto.disorders[0].name == "Disease one"


# ═══════════════════════════════════════════════════════════════════════════
# 2. MongoPatientRepository
# ═══════════════════════════════════════════════════════════════════════════


class TestMongoPatientRepository:
    def test_satisfies_protocol(self):
        assert isinstance(MongoPatientRepository(_db()), PatientRepository)

    def test_owner_gets_open_access(self):
        repo = MongoPatientRepository(_db())
        patient = patient_from_document({"_id": "p1", "owner": "alice", "visibility": "private"})
        assert repo.is_owned_by("alice", patient)
        assert repo.access_for("alice", patient) is AccessType.OPEN

    def test_group_member_gets_open_access(self):
        db = _db()
        db["users"].find_one.return_value = {"_id": "bob", "groups": ["lab-1"]}
        repo = MongoPatientRepository(db)
        patient = patient_from_document({"_id": "p1", "owner": "alice", "group": "lab-1", "visibility": "matchable"})
        assert repo.access_for("bob", patient) is AccessType.OPEN

    def test_others_get_visibility(self):
        db = _db()
        db["users"].find_one.return_value = None
        repo = MongoPatientRepository(db)
        patient = patient_from_document({"_id": "p1", "owner": "alice", "visibility": "matchable"})
        assert not repo.is_owned_by("carol", patient)
        assert repo.access_for("carol", patient) is AccessType.MATCHABLE
        assert repo.access_for(None, patient) is AccessType.MATCHABLE

    def test_accessible_query(self):
        db = _db()
        db["users"].find_one.return_value = {"_id": "bob", "groups": ["lab-1"]}
        db["patients"].find.return_value = [{"_id": "p1", "hpo_terms": [SEIZURE], "visibility": "open"}]
        patients = MongoPatientRepository(db).patients_accessible_to("bob")

        assert [p.id for p in patients] == ["p1"]
        query = db["patients"].find.call_args.args[0]
        assert {"owner": "bob"} in query["$or"]
        assert {"group": {"$in": ["lab-1"]}} in query["$or"]
        assert {"visibility": {"$in": ["matchable", "open"]}} in query["$or"]

    def test_groups_resolved_once_per_search(self):
        db = _db()
        db["users"].find_one.return_value = {"_id": "bob", "groups": ["lab-1"]}
        db["patients"].find.return_value = [
            {"_id": f"p{i}", "owner": "alice", "group": "lab-1" if i % 2 else None, "visibility": "matchable"}
            for i in range(5)
        ]
        repo = MongoPatientRepository(db)
        patients = repo.patients_accessible_to("bob")
        tiers = [repo.access_for("bob", p) for p in patients]

        assert tiers == [AccessType.MATCHABLE, AccessType.OPEN] * 2 + [AccessType.MATCHABLE]
        assert db["users"].find_one.call_count == 1

        # the next search sees membership changes
        db["users"].find_one.return_value = {"_id": "bob", "groups": []}
        patients = repo.patients_accessible_to("bob")
        assert db["users"].find_one.call_count == 2
        assert repo.access_for("bob", patients[1]) is AccessType.MATCHABLE

    def test_search_through_finder_reads_groups_once(self, ontology):
        from similarity.finder import SimilarPatientsFinder

        db = _db()
        db["users"].find_one.return_value = {"_id": "bob", "groups": ["lab-1"]}
        db["patients"].find.return_value = [
            {"_id": f"p{i}", "owner": "alice", "group": "lab-1", "hpo_terms": [SEIZURE], "visibility": "matchable"}
            for i in range(4)
        ]
        reference = patient_from_document({"_id": "ref", "owner": "bob", "hpo_terms": [SEIZURE]})
        finder = SimilarPatientsFinder(MongoPatientRepository(db), ontology, user="bob", max_workers=1)

        assert len(finder.find_similar_patients(reference)) == 4
        assert db["users"].find_one.call_count == 1

    def test_anonymous_query_only_shared(self):
        db = _db()
        db["patients"].find.return_value = []
        MongoPatientRepository(db).patients_accessible_to(None)
        query = db["patients"].find.call_args.args[0]
        assert query == {"$or": [{"visibility": {"$in": ["matchable", "open"]}}]}
        db["users"].find_one.assert_not_called()

    def test_prototypes(self):
        db = _db()
        db["disease_profiles"].find.return_value = [{"_id": "OMIM:1", "name": "D", "hpo_terms": [SEIZURE]}]
        protos = MongoPatientRepository(db).prototype_patients()
        assert [(p.id, p.visibility) for p in protos] == [("OMIM:1", AccessType.OPEN)]

    def test_get_patient(self):
        db = _db()
        db["patients"].find_one.return_value = None
        assert MongoPatientRepository(db).get_patient("nope") is None

    @pytest.mark.parametrize("call", [
        lambda r: r.patients_accessible_to(None),
        lambda r: r.prototype_patients(),
        lambda r: r.get_patient("p1"),
        lambda r: r.groups_of("bob"),
    ])
    def test_outage_wrapped(self, call):
        db = _db()
        outage = ServerSelectionTimeoutError("no servers")
        for col in db.values():
            col.find.side_effect = outage
            col.find_one.side_effect = outage
        with pytest.raises(RepositoryUnavailableError):
            call(MongoPatientRepository(db))


# ═══════════════════════════════════════════════════════════════════════════
# 3. SearchLog
# ═══════════════════════════════════════════════════════════════════════════


class TestSearchLog:
    @patch("core.search_log.redis.from_url")
    def test_log_search(self, mock_from_url):
        from core.search_log import SearchLog

        client = mock_from_url.return_value
        log = SearchLog("redis://localhost:6379", ttl=60)
        summary = PatientSimilaritySummary(
            reference_id="ref", candidate_id="c1", access=AccessType.MATCHABLE, score=0.5,
        )
        log.log_search("alice", "ref", "patients", [summary])

        key, payload = client.rpush.call_args.args
        record = json.loads(payload)
        assert key == "search:ref"
        assert record["user"] == "alice"
        assert record["kind"] == "patients"
        assert record["result_count"] == 1
        assert record["results"][0]["access"] == "matchable"
        client.expire.assert_called_once_with("search:ref", 60)

    @patch("core.search_log.redis.from_url")
    def test_explicit_count(self, mock_from_url):
        from core.search_log import SearchLog

        client = mock_from_url.return_value
        SearchLog("redis://x").log_search("alice", "ref", "count", [], result_count=7)
        assert json.loads(client.rpush.call_args.args[1])["result_count"] == 7

    @patch("core.search_log.redis.from_url")
    def test_get_searches(self, mock_from_url):
        from core.search_log import SearchLog

        mock_from_url.return_value.lrange.return_value = [json.dumps({"kind": "patients"})]
        assert SearchLog("redis://x").get_searches("ref") == [{"kind": "patients"}]

    @patch("core.search_log.redis.from_url")
    def test_redis_failure_never_raises(self, mock_from_url, caplog):
        from core.search_log import SearchLog

        client = mock_from_url.return_value
        client.rpush.side_effect = redis.ConnectionError("down")
        client.lrange.side_effect = redis.ConnectionError("down")
        log = SearchLog("redis://x")

        log.log_search("alice", "ref", "patients", [])
        assert log.get_searches("ref") == []
        assert "Redis log_search failed" in caplog.text


# ═══════════════════════════════════════════════════════════════════════════
# 4. Patient ingestion parser
# ═══════════════════════════════════════════════════════════════════════════


PATIENT_FILE = """Patient 1
A 5-year-old female diagnosed with Rett syndrome (OMIM: 312750)
HP:0001250; HP:0001249

Patient 2
A 2-year-old male with global delay
HP:0000518
"""


class TestIngestPatients:
    def test_parse_patient_file(self, tmp_path):
        from scripts.ingest_patients import parse_patient_file

        path = tmp_path / "patients.txt"
        path.write_text(PATIENT_FILE, encoding="utf-8")
        docs = parse_patient_file(str(path), owner="demo", visibility="matchable")

        assert [d["_id"] for d in docs] == ["patient_01", "patient_02"]
        assert docs[0]["owner"] == "demo"
        assert docs[0]["visibility"] == "matchable"
        assert [f["id"] for f in docs[0]["features"]] == ["HP:0001250", "HP:0001249"]
        assert docs[0]["disorders"] == [{"id": "OMIM:312750", "name": "Rett syndrome"}]
        assert docs[1]["disorders"][0]["id"] == ""

        patient = patient_from_document(docs[0])
        assert patient.visibility is AccessType.MATCHABLE
        assert patient.disorders[0].value == "OMIM:312750"
