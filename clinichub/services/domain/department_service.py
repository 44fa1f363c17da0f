"""
Department Domain Service

Departments are a catalog shared by every complex; a complex offers a
department through a ``ComplexDepartment`` link.
"""

from typing import List, Optional

from clinichub.models.facilities import ComplexDepartment, Department
from clinichub.services.domain.entity_service import EntityService


class DepartmentService(EntityService):
    model = Department
    entity_type = "department"

    def __init__(self):
        super().__init__("DepartmentService")

    def find_by_name(self, uow, name: str) -> Optional[Department]:
        return uow.session.query(Department).filter(Department.name == name).first()

    def find_or_create(self, uow, name: str, description: str = None) -> Department:
        department = self.find_by_name(uow, name)
        if department is None:
            return self.create(uow, {"name": name, "description": description})
        if description and not department.description:
            department.description = description
            uow.flush()
        return department

    def find_link(self, uow, complex_id: int, department_id: int) -> Optional[ComplexDepartment]:
        return (
            uow.session.query(ComplexDepartment)
            .filter(ComplexDepartment.complex_id == complex_id, ComplexDepartment.department_id == department_id)
            .first()
        )

    def link_to_complex(self, uow, complex_id: int, department_id: int) -> ComplexDepartment:
        link = self.find_link(uow, complex_id, department_id)
        if link is None:
            link = ComplexDepartment(complex_id=complex_id, department_id=department_id)
            uow.add(link)
            uow.flush()
            self.logger.info(f"Linked department {department_id} to complex {complex_id}")
        return link

    def list_by_parent(self, uow, parent_id: int) -> List[ComplexDepartment]:
        """Department links of one complex."""
        return (
            uow.session.query(ComplexDepartment)
            .filter(ComplexDepartment.complex_id == parent_id)
            .order_by(ComplexDepartment.id)
            .all()
        )
