"""Shared fixtures: small schemas covering each relationship shape."""

import logging

import pytest

from efrev.schema.models import Column, ForeignKey, Index, IndexColumn, Table


@pytest.fixture(autouse=True)
def propagate_efrev_logs():
    """Let caplog see efrev records (setup_logging disables propagation)."""
    logger = logging.getLogger("efrev")
    previous = logger.propagate
    logger.propagate = True
    yield
    logger.propagate = previous


def pk(name, data_type="int"):
    return Column(name=name, data_type=data_type, nullable=False, primary_key=True, identity=True)


def unique_index(name, column):
    return Index(name=name, unique=True, columns=[IndexColumn(name=column, key_ordinal=1)])


@pytest.fixture
def customer():
    return Table(
        name="Customer",
        schema_name="dbo",
        columns=[pk("CustomerId"), Column(name="Name", data_type="nvarchar", nullable=False, max_length=100)],
    )


@pytest.fixture
def order():
    return Table(
        name="Order",
        schema_name="dbo",
        columns=[
            pk("OrderId"),
            Column(name="CustomerId", data_type="int", nullable=False),
            Column(name="OrderDate", data_type="datetime", nullable=False),
        ],
        foreign_keys=[
            ForeignKey.single(
                "CustomerId", "Customer", "CustomerId",
                name="FK_Order_Customer", delete_rule="CASCADE",
            )
        ],
    )


@pytest.fixture
def order_item():
    return Table(
        name="OrderItem",
        columns=[
            pk("OrderItemId"),
            Column(name="OrderId", data_type="int", nullable=False),
            Column(name="Quantity", data_type="int", nullable=False),
        ],
        foreign_keys=[ForeignKey.single("OrderId", "Order", "OrderId", delete_rule="NO ACTION")],
    )


@pytest.fixture
def user_profile():
    return Table(
        name="UserProfile",
        columns=[pk("ProfileId"), Column(name="Bio", data_type="nvarchar", max_length=-1)],
    )


@pytest.fixture
def user():
    return Table(
        name="User",
        columns=[
            pk("UserId"),
            Column(name="UserProfileId", data_type="int", nullable=False),
        ],
        foreign_keys=[ForeignKey.single("UserProfileId", "UserProfile", "ProfileId")],
        indexes=[unique_index("UX_User_UserProfileId", "UserProfileId")],
    )


@pytest.fixture
def student():
    return Table(name="Student", columns=[pk("StudentId"), Column(name="Name", data_type="nvarchar")])


@pytest.fixture
def course():
    return Table(name="Course", columns=[pk("CourseId"), Column(name="Title", data_type="nvarchar")])


@pytest.fixture
def enrollment():
    return Table(
        name="Enrollment",
        columns=[
            Column(name="StudentId", data_type="int", nullable=False, primary_key=True),
            Column(name="CourseId", data_type="int", nullable=False, primary_key=True),
        ],
        foreign_keys=[
            ForeignKey.single("StudentId", "Student", "StudentId", delete_rule="CASCADE"),
            ForeignKey.single("CourseId", "Course", "CourseId", delete_rule="CASCADE"),
        ],
    )


@pytest.fixture
def school(student, course, enrollment):
    return [student, course, enrollment]


@pytest.fixture
def shop(customer, order, order_item):
    return [customer, order, order_item]


@pytest.fixture
def teacher():
    return Table(name="Teacher", columns=[pk("TeacherId")])


@pytest.fixture
def graded_enrollment():
    """Composite key over Student/Course plus a third foreign key to Teacher."""
    return Table(
        name="Enrollment",
        columns=[
            Column(name="StudentId", data_type="int", nullable=False, primary_key=True),
            Column(name="CourseId", data_type="int", nullable=False, primary_key=True),
            Column(name="GradedById", data_type="int"),
        ],
        foreign_keys=[
            ForeignKey.single("StudentId", "Student", "StudentId"),
            ForeignKey.single("CourseId", "Course", "CourseId"),
            ForeignKey.single("GradedById", "Teacher", "TeacherId"),
        ],
    )


@pytest.fixture
def employee():
    return Table(
        name="Employee",
        columns=[pk("EmployeeId"), Column(name="DepartmentId", data_type="int", nullable=False)],
        foreign_keys=[ForeignKey.single("DepartmentId", "Department", "DepartmentId")],
    )


@pytest.fixture
def department():
    """References Employee back through its manager."""
    return Table(
        name="Department",
        columns=[pk("DepartmentId"), Column(name="ManagerId", data_type="int")],
        foreign_keys=[ForeignKey.single("ManagerId", "Employee", "EmployeeId")],
    )
