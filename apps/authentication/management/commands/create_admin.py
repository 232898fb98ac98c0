from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model

User = get_user_model()


class Command(BaseCommand):
    help = 'Create an admin user, or reset the password of an existing one'

    def add_arguments(self, parser):
        parser.add_argument('--email', type=str, required=True)
        parser.add_argument('--password', type=str, required=True)
        parser.add_argument('--username', type=str, default=None)

    def handle(self, *args, **options):
        email = options['email']
        password = options['password']
        username = options['username'] or email.split('@')[0]

        user = User.objects.filter(email__iexact=email).first()
        if user:
            user.set_password(password)
            user.role = 'admin'
            user.save(update_fields=['password', 'role'])
            self.stdout.write(
                self.style.WARNING(f'User {email} already existed; password reset and admin role set')
            )
            return

        User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role='admin'
        )

        self.stdout.write(
            self.style.SUCCESS(f'Successfully created admin user {email}')
        )
