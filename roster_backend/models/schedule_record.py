from roster_backend.extensions import db
from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, UniqueConstraint
from roster_backend.models.time_slot import TimeSlot
from roster_backend.utils.timezone import academy_now_naive


class ScheduleRecord(db.Model):
    __tablename__ = 'schedule_records'
    __table_args__ = (
        UniqueConstraint('class_date', 'time_slot', name='uq_schedule_records_date_slot'),
    )

    id = Column(Integer, primary_key=True)
    class_date = Column(Date, nullable=False, index=True)
    time_slot = Column(
        db.Enum(
            TimeSlot,
            name='timeslot',
            values_callable=lambda enum: [slot.value for slot in enum],
        ),
        nullable=False,
    )
    # Instructors live in the external directory, so no foreign key here
    instructor_id = Column(Integer, nullable=True, index=True)
    attendance_taken = Column(Boolean, nullable=False, default=False)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=academy_now_naive)
    updated_at = Column(DateTime, default=academy_now_naive, onupdate=academy_now_naive)

    attendance_entries = db.relationship(
        'AttendanceEntry',
        back_populates='schedule_record',
        cascade='all, delete-orphan',
        order_by='AttendanceEntry.student_id',
    )

    def __repr__(self):
        return f'<ScheduleRecord {self.id}: {self.class_date} {self.time_slot.value}>'

    def to_dict(self, instructor_name=None):
        return {
            'id': self.id,
            'class_date': self.class_date.isoformat(),
            'time_slot': self.time_slot.value,
            'name': self.name,
            'instructor_id': self.instructor_id,
            'instructor_name': instructor_name,
            'attendance_taken': bool(self.attendance_taken),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
