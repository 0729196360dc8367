from schoolfees.core.models.payment import Payment
from schoolfees.core.models.student import Student
