"""Tests for entity planning."""

import logging

import pytest

from efrev.analysis.analyzer import RelationshipAnalyzer
from efrev.analysis.relationships import RelationKind
from efrev.emission.orchestrator import MISSING_REFERENCED_TABLE, EmissionOrchestrator
from efrev.errors import InvalidTableError, RelationshipAnalysisError
from efrev.schema.models import Column, ForeignKey, Table

from conftest import pk


def _navigation(entity, name):
    matches = [n for n in entity.navigations if n.name == name]
    assert matches, f"{entity.entity_name} has no navigation {name}: {[n.name for n in entity.navigations]}"
    return matches[0]


def test_one_to_many_navigations(shop):
    """Dependent gets a reference, principal gets a pluralized collection."""
    plan = EmissionOrchestrator(shop).plan_all()
    assert plan.failures == {}

    customer = plan.get_entity("Customer")
    orders = _navigation(customer, "Orders")
    assert orders.collection
    assert orders.target_entity == "Order"
    assert orders.kind == RelationKind.ONE_TO_MANY
    assert orders.inverse_name == "Customer"

    order = plan.get_entity("Order")
    reference = _navigation(order, "Customer")
    assert not reference.collection
    assert reference.inverse_name == "Orders"
    assert _navigation(order, "OrderItems").target_entity == "OrderItem"


def test_scalars_follow_columns(order, customer):
    plan = EmissionOrchestrator([customer, order]).plan_table(order)
    assert [s.name for s in plan.scalars] == ["OrderId", "CustomerId", "OrderDate"]
    assert [s.clr_type for s in plan.scalars] == ["int", "int", "DateTime"]
    assert [s.name for s in plan.key_properties] == ["OrderId"]


def test_mapping_required_and_cascade(shop):
    """Required follows FK nullability; cascade only for CASCADE."""
    plan = EmissionOrchestrator(shop).plan_all()

    order_mapping = plan.get_entity("Order").mappings[0]
    assert order_mapping.dependent
    assert order_mapping.navigation == "Customer"
    assert order_mapping.required
    assert order_mapping.cascade_on_delete
    assert order_mapping.columns == ["CustomerId"]

    item_mapping = plan.get_entity("OrderItem").mappings[0]
    assert item_mapping.required
    assert not item_mapping.cascade_on_delete


@pytest.mark.parametrize("rule", ["NO ACTION", "RESTRICT", "SET NULL", "SET DEFAULT", None])
def test_non_cascade_rules(customer, rule):
    order = Table(
        name="Order",
        columns=[pk("OrderId"), Column(name="CustomerId", data_type="int", nullable=True)],
        foreign_keys=[ForeignKey.single("CustomerId", "Customer", "CustomerId", delete_rule=rule)],
    )
    mapping = EmissionOrchestrator([customer, order]).plan_table(order).mappings[0]
    assert not mapping.cascade_on_delete
    assert not mapping.required


def test_one_to_one_navigations(user, user_profile):
    plan = EmissionOrchestrator([user, user_profile]).plan_all()

    user_plan = plan.get_entity("User")
    profile = _navigation(user_plan, "UserProfile")
    assert profile.kind == RelationKind.ONE_TO_ONE
    assert not profile.collection
    assert profile.inverse_name == "User"
    assert user_plan.mappings[0].dependent

    profile_plan = plan.get_entity("UserProfile")
    back = _navigation(profile_plan, "User")
    assert not back.collection
    assert profile_plan.mappings[0].principal
    assert profile_plan.mappings[0].kind == RelationKind.ONE_TO_ONE


def test_many_to_many_elides_junction(school):
    plan = EmissionOrchestrator(school).plan_all()

    enrollment = plan.get_entity("Enrollment")
    assert enrollment.is_junction
    assert enrollment.navigations == []
    assert [e.entity_name for e in plan.model_entities] == ["Student", "Course"]

    student = plan.get_entity("Student")
    courses = _navigation(student, "Courses")
    assert courses.collection and courses.kind == RelationKind.MANY_TO_MANY
    assert courses.inverse_name == "Students"
    mapping = student.mappings[0]
    assert mapping.junction_table == "Enrollment"
    assert mapping.left_key_columns == ["StudentId"]
    assert mapping.right_key_columns == ["CourseId"]

    course = plan.get_entity("Course")
    assert _navigation(course, "Students").inverse_name == "Courses"
    assert course.mappings == []


def test_missing_referenced_table_is_a_warning(order, caplog):
    """An FK to a table outside the set keeps the scalar and records a warning."""
    with caplog.at_level(logging.WARNING, logger="efrev"):
        plan = EmissionOrchestrator([order]).plan_all()

    entity = plan.get_entity("Order")
    assert "CustomerId" in [s.name for s in entity.scalars]
    assert entity.navigations == []
    assert entity.mappings == []
    assert [w.code for w in plan.warnings] == [MISSING_REFERENCED_TABLE]
    assert plan.warnings[0].details["referenced_table"] == "Customer"
    assert plan.failures == {}
    assert any(
        "Order" in r.getMessage() and "Customer" in r.getMessage()
        for r in caplog.records
        if r.levelno == logging.WARNING
    )


def test_self_reference():
    employee = Table(
        name="Employee",
        columns=[pk("EmployeeId"), Column(name="ManagerId", data_type="int", nullable=True)],
        foreign_keys=[ForeignKey.single("ManagerId", "Employee", "EmployeeId")],
    )
    entity = EmissionOrchestrator([employee]).plan_table(employee)

    manager = _navigation(entity, "Manager")
    assert not manager.collection
    assert manager.inverse_name == "InverseManager"
    reports = _navigation(entity, "InverseManager")
    assert reports.collection
    assert reports.target_entity == "Employee"


def test_several_foreign_keys_to_one_table():
    address = Table(name="Address", columns=[pk("AddressId")])
    shipment = Table(
        name="Shipment",
        columns=[
            pk("ShipmentId"),
            Column(name="FromAddressId", data_type="int", nullable=False),
            Column(name="ToAddressId", data_type="int", nullable=False),
        ],
        foreign_keys=[
            ForeignKey.single("FromAddressId", "Address", "AddressId"),
            ForeignKey.single("ToAddressId", "Address", "AddressId"),
        ],
    )
    plan = EmissionOrchestrator([address, shipment]).plan_all()

    shipment_plan = plan.get_entity("Shipment")
    assert [n.name for n in shipment_plan.navigations] == ["FromAddress", "ToAddress"]
    address_plan = plan.get_entity("Address")
    assert [n.name for n in address_plan.navigations] == ["FromAddressShipments", "ToAddressShipments"]
    assert _navigation(shipment_plan, "ToAddress").inverse_name == "ToAddressShipments"


def test_navigation_name_clash_with_column(customer):
    """A navigation never reuses a scalar property name."""
    order = Table(
        name="Order",
        columns=[pk("OrderId"), Column(name="Customer", data_type="int", nullable=False)],
        foreign_keys=[ForeignKey.single("Customer", "Customer", "CustomerId")],
    )
    entity = EmissionOrchestrator([customer, order]).plan_table(order)
    assert [n.name for n in entity.navigations] == ["CustomerNavigation"]


def test_without_pluralization(shop):
    plan = EmissionOrchestrator(shop, pluralize_collections=False).plan_all()
    assert _navigation(plan.get_entity("Customer"), "Order").collection


def test_singularized_entity_names():
    categories = Table(name="categories", columns=[pk("id")])
    orchestrator = EmissionOrchestrator([categories], singularize_entity_names=True)
    assert orchestrator.plan_table(categories).entity_name == "Category"
    assert EmissionOrchestrator([categories]).entity_name("order_items") == "OrderItems"


def test_plan_table_rejects_missing_table(shop):
    orchestrator = EmissionOrchestrator(shop)
    with pytest.raises(InvalidTableError):
        orchestrator.plan_table(None)
    with pytest.raises(InvalidTableError):
        orchestrator.plan_table(Table(name=""))


class _FailingAnalyzer(RelationshipAnalyzer):
    """Fails for every pair declared by the Order table."""

    def analyze_relationship(self, source, target):
        if source is not None and source.name == "Order":
            raise RelationshipAnalysisError(source.name, target.name, RuntimeError("boom"))
        return super().analyze_relationship(source, target)


def test_failing_table_does_not_abort_run(shop):
    plan = EmissionOrchestrator(shop, analyzer=_FailingAnalyzer()).plan_all()

    assert list(plan.failures) == ["Order"]
    assert "Order" in plan.failures["Order"] and "Customer" in plan.failures["Order"]
    assert [e.table_name for e in plan.entities] == ["Customer", "OrderItem"]
    assert _navigation(plan.get_entity("OrderItem"), "Order").inverse_name == "OrderItems"


def test_parallel_planning_matches_sequential(shop, school, user, user_profile):
    tables = shop + school + [user, user_profile]
    sequential = EmissionOrchestrator(tables).plan_all()
    parallel = EmissionOrchestrator(tables, max_workers=4).plan_all()
    assert parallel.model_dump() == sequential.model_dump()


def test_plan_table_scans_incoming_foreign_keys_once(shop, monkeypatch):
    orchestrator = EmissionOrchestrator(shop)
    scanned = []
    incoming = orchestrator._incoming

    def counting_incoming(principal):
        scanned.append(principal.name)
        return incoming(principal)

    monkeypatch.setattr(orchestrator, "_incoming", counting_incoming)
    entity = orchestrator.plan_table(shop[1])

    # Order itself plus Customer, the principal of its only reference
    assert sorted(scanned) == ["Customer", "Order"]
    assert _navigation(entity, "Customer").inverse_name == "Orders"
    assert _navigation(entity, "OrderItems").inverse_name == "Order"


def test_third_foreign_key_keeps_entity(student, course, teacher, graded_enrollment):
    plan = EmissionOrchestrator([student, course, teacher, graded_enrollment]).plan_all()

    enrollment = plan.get_entity("Enrollment")
    assert not enrollment.is_junction
    assert {n.name for n in enrollment.navigations} == {"Student", "Course", "Teacher"}
    assert _navigation(plan.get_entity("Teacher"), "Enrollments").collection
    assert all(n.kind != RelationKind.MANY_TO_MANY for n in plan.get_entity("Student").navigations)
