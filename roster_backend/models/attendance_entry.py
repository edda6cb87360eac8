from roster_backend.extensions import db
from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from roster_backend.models.attendance_status import AttendanceStatus
from roster_backend.utils.timezone import academy_now_naive


class AttendanceEntry(db.Model):
    __tablename__ = 'attendance_entries'
    __table_args__ = (
        UniqueConstraint('schedule_record_id', 'student_id', name='uq_attendance_entries_record_student'),
    )

    id = Column(Integer, primary_key=True)
    schedule_record_id = Column(Integer, ForeignKey('schedule_records.id', ondelete='CASCADE'), nullable=False, index=True)
    student_id = Column(Integer, nullable=False)
    status = Column(
        db.Enum(
            AttendanceStatus,
            name='attendancestatus',
            values_callable=lambda enum: [status.value for status in enum],
        ),
        nullable=False,
    )
    marked_at = Column(DateTime, default=academy_now_naive, onupdate=academy_now_naive)

    schedule_record = db.relationship('ScheduleRecord', back_populates='attendance_entries')

    def __repr__(self):
        return f'<AttendanceEntry {self.id}: {self.student_id} - {self.status.value}>'

    def to_dict(self):
        return {
            'id': self.id,
            'schedule_record_id': self.schedule_record_id,
            'student_id': self.student_id,
            'status': self.status.value,
            'marked_at': self.marked_at.isoformat() if self.marked_at else None,
        }
