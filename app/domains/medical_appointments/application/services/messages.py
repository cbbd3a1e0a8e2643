# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Outbound message texts (patients and operator channel).
# ============================================================================
"""Message Templates.

Portuguese texts sent to patients and to the operator. Kept in one place so
workflows only decide *what* to send.
"""

from typing import Any

from ...domain.entities.patient import PatientRecord
from ...domain.value_objects.appointment_status import AppointmentStatus

FEEDBACK_LABELS = {
    "5": "Excelente ✨",
    "4": "Muito Bom 👍",
    "3": "Bom / Razoável ✅",
    "2": "Ruim 👎",
    "1": "Péssimo 😠",
}

TO_CONFIRM = "a confirmar"


class MessageTemplates:
    """Textos de las notificaciones."""

    def __init__(
        self,
        tcle_url: str = "",
        form_url: str = "",
        exam_name: str = "colonoscopia",
        default_address: str = ".",
        clinic_name: str = "FMJ",
    ):
        self.tcle_url = tcle_url
        self.form_url = form_url
        self.exam_name = exam_name
        self.default_address = default_address
        self.clinic_name = clinic_name

    @classmethod
    def from_settings(cls, settings: Any) -> "MessageTemplates":
        return cls(
            tcle_url=settings.TCLE_URL,
            form_url=settings.FORM_URL,
            exam_name=settings.EXAM_NAME,
            default_address=settings.DEFAULT_ADDRESS,
            clinic_name=settings.CLINIC_NAME,
        )

    def _address(self, patient: PatientRecord) -> str:
        return patient.address.strip() or self.default_address

    # ------------------------------------------------------------------
    # Consent (TCLE)
    # ------------------------------------------------------------------

    def consent_prompt(self, name: str, attempt_number: int) -> str:
        text = (
            f"*Olá, {name}!* 👋\n\n"
            f"Seu cadastro para o exame de {self.exam_name} foi recebido! 🎉\n\n"
            "📋 *IMPORTANTE - Termo de Consentimento*\n\n"
            "Para continuarmos com seu agendamento, é essencial que você leia e aceite nosso "
            "Termo de Consentimento Livre e Esclarecido (TCLE).\n\n"
            f"📄 *Acesse o TCLE aqui:* {self.tcle_url}\n\n"
            "Após a leitura cuidadosa do documento, por favor, responda a esta mensagem com:\n"
            "➡️ Digite *ACEITO* (ou 1) se você concorda com todos os termos.\n"
            "➡️ Digite *NÃO ACEITO* (ou 2) se você não concorda com os termos.\n\n"
            "⚠️ *Seu agendamento só poderá ser confirmado após sua resposta ao TCLE.*"
        )
        if attempt_number > 1:
            text += f"\n\n⏰ *Esta é sua {attempt_number}ª tentativa. Você tem até 3 dias para responder.*"
        return text

    def consent_accepted(self, patient: PatientRecord) -> str:
        return (
            f"✅ *Obrigado por aceitar o TCLE, {patient.display_name}!* Seu consentimento foi registrado.\n\n"
            "Agora podemos prosseguir com os detalhes do seu atendimento:\n\n"
            f"👨‍⚕️ *Seu Exame:* {self.exam_name.capitalize()}\n"
            f"📅 Data: {patient.appointment_date or 'Data ' + TO_CONFIRM}\n"
            f"🕒 Horário: {patient.appointment_time or 'Horário ' + TO_CONFIRM}\n"
            f"📍 Local: {self._address(patient)}\n\n"
            "ℹ️ *Próximos Passos:*\n"
            "• Você receberá um lembrete 7 dias antes do exame.\n"
            "• Outro lembrete será enviado 2 dias antes com instruções finais.\n"
            "• Após o exame, entraremos em contato para saber sobre sua experiência.\n\n"
            "Agradecemos a preferência e estamos à disposição! 🙏"
        )

    def consent_rejected(self, name: str) -> str:
        return (
            "❌ *TCLE Não Aceito*\n\n"
            f"Olá, {name}. Recebemos sua resposta indicando que não aceita os termos do TCLE.\n\n"
            "Respeitamos sua decisão. No entanto, a aceitação do termo é um requisito para a "
            "realização do exame em nossa clínica.\n\n"
            "Caso reconsidere ou tenha dúvidas, por favor, entre em contato conosco.\n\nObrigado."
        )

    def consent_unrecognized(self, name: str, attempts: int, max_attempts: int) -> str:
        return (
            f"⚠️ *Resposta não compreendida* (Tentativa {attempts}/{max_attempts})\n\n"
            f"Olá, {name}. Para o Termo de Consentimento, responda apenas:\n"
            "➡️ *ACEITO* (ou 1) - se concorda com o TCLE\n"
            "➡️ *NÃO ACEITO* (ou 2) - se não concorda\n\n"
            f"📄 Você pode reler o TCLE aqui: {self.tcle_url}\n\n"
            f"⏰ Você tem mais {max(0, max_attempts - attempts)} tentativa(s)."
        )

    def consent_exhausted(self, name: str, max_attempts: int) -> str:
        return (
            "⚠️ *Máximo de tentativas atingido*\n\n"
            f"{name}, você atingiu o limite de {max_attempts} tentativas para responder ao TCLE.\n\n"
            "Para prosseguir com o agendamento, será necessário entrar em contato diretamente "
            "com a clínica ou refazer o cadastro.\n\n"
            f"📄 Formulário: {self.form_url}"
        )

    def consent_expired(self, name: str) -> str:
        return (
            "⏰ *Prazo para Resposta ao TCLE Expirado*\n\n"
            f"Olá, {name}. O prazo para responder ao Termo de Consentimento (TCLE) expirou.\n\n"
            "Para prosseguir com um novo agendamento:\n"
            "1. Preencha novamente o formulário de cadastro\n"
            "2. Ou entre em contato diretamente com nossa clínica\n\n"
            f"📄 Formulário: {self.form_url}"
        )

    def consent_required(self, name: str) -> str:
        return (
            f"Olá, {name}!\n\n"
            "Para que possamos prosseguir, é necessário que seu Termo de Consentimento (TCLE) esteja aceito.\n\n"
            f"📄 Se precisar do link: {self.tcle_url}\n\n"
            "Responda *ACEITO* ou *NÃO ACEITO* após ler o documento."
        )

    def patient_not_found(self) -> str:
        return (
            "⚠️ Não encontramos seu cadastro ativo.\n\n"
            "Por favor, entre em contato diretamente com a clínica.\n\n"
            f"📄 Formulário: {self.form_url}"
        )

    def registry_write_failed(self) -> str:
        return "Desculpe, houve um problema ao registrar sua resposta. Por favor, tente novamente em alguns instantes. 🙏"

    # ------------------------------------------------------------------
    # Reminders and feedback
    # ------------------------------------------------------------------

    def reminder_7d(self, patient: PatientRecord) -> str:
        return (
            "🔔 *Lembrete Importante: Seu exame é em 7 dias!*\n\n"
            f"Olá, {patient.display_name}! Gostaríamos de lembrar que seu exame de {self.exam_name} "
            "está agendado para daqui a uma semana.\n\n"
            f"📅 *Data:* {patient.appointment_date}\n"
            f"🕒 *Horário:* {patient.appointment_time or 'Horário ' + TO_CONFIRM}\n"
            f"📍 *Local:* {self._address(patient)}\n\n"
            "*Por favor, confirme sua presença respondendo:*\n"
            "✅ Digite *1* para CONFIRMAR sua presença.\n"
            "📅 Digite *2* se precisar REMARCAR (entre em contato diretamente com sua UBS para fazer a remarcação).\n\n"
            "Aguardamos sua resposta! 😊"
        )

    def reminder_2d(self, patient: PatientRecord) -> str:
        return (
            "🔔 *Atenção: Seu exame é em 2 dias!*\n\n"
            f"Olá, {patient.display_name}! Seu exame de {self.exam_name} está chegando!\n\n"
            f"📅 *Data:* {patient.appointment_date}\n"
            f"🕒 *Horário:* {patient.appointment_time or 'Horário ' + TO_CONFIRM}\n"
            f"📍 *Local:* {self._address(patient)}\n\n"
            "⚠️ *MUITO IMPORTANTE:*\n"
            "1. Certifique-se de ter adquirido o kit de preparo intestinal.\n"
            "2. Siga RIGOROSAMENTE todas as instruções de preparo.\n"
            "3. Lembre-se de vir com um acompanhante maior de idade.\n\n"
            "*Confirme sua presença respondendo:*\n"
            "✅ Digite *1* para CONFIRMAR.\n"
            "📅 Digite *2* se precisar REMARCAR (entre em contato diretamente com sua UBS para fazer a remarcação).\n\n"
            "Contamos com você! 👍"
        )

    def feedback_request(self, name: str) -> str:
        scale = "\n".join(f"*{score}* - {FEEDBACK_LABELS[score]}" for score in ("5", "4", "3", "2", "1"))
        return (
            "🌟 *Como foi sua experiência conosco?*\n\n"
            f"Olá, {name}! Esperamos que seu exame de {self.exam_name} tenha ocorrido bem.\n\n"
            "Sua opinião é muito valiosa para nós! Gostaríamos de saber como foi sua experiência geral.\n\n"
            "*Por favor, avalie nosso serviço respondendo com um número de 1 a 5:*\n"
            f"{scale}\n\n"
            "Se desejar, pode adicionar um breve comentário após o número.\nAgradecemos sua colaboração! 🙏"
        )

    def feedback_thanks(self, name: str) -> str:
        return (
            f"🌟 *Obrigado pelo seu feedback, {name}!* 🌟\n\n"
            "Sua avaliação foi registrada e é muito importante para nós!\n\n"
            "Continuaremos trabalhando para melhorar nossos serviços. Desejamos muita saúde! 💙"
        )

    def feedback_failed(self) -> str:
        return "Obrigado pelo feedback! Houve um problema ao registrá-lo, mas nossa equipe foi informada."

    # ------------------------------------------------------------------
    # Menu
    # ------------------------------------------------------------------

    def menu(self, patient: PatientRecord, status_label: str) -> str:
        status = patient.workflow_status
        text = f"👋 *Olá, {patient.display_name}!* Como posso ajudar hoje?\n\n"
        if status is None or status.shows_schedule_menu():
            text += (
                "📋 *Seu Exame Agendado:*\n"
                f"   {self.exam_name.capitalize()}\n"
                f"   📅 Data: *{patient.appointment_date or 'Não definida'}*\n"
                f"   🕒 Horário: *{patient.appointment_time or 'Não definido'}*\n"
                f"   📍 Local: {self._address(patient)}\n"
                f"   Status: {status_label}\n\n"
                "*Escolha uma opção:*\n"
                "1️⃣ - CONFIRMAR consulta\n"
                "2️⃣ - REMARCAR consulta (entre em contato diretamente com sua UBS)\n"
                "3️⃣ - Informações sobre o PREPARO do exame\n"
                "4️⃣ - Falar com um ATENDENTE\n"
                "Digite o número da opção desejada."
            )
        elif status is AppointmentStatus.RESCHEDULED:
            text += "📋 *Status:* REMARCAÇÃO PENDENTE\n\nPara remarcar a consulta entre em contato com a UBS!"
        elif status is AppointmentStatus.CANCELLED:
            text += (
                "📋 *Status:* CANCELADA\n\n"
                "Sua consulta foi cancelada conforme solicitado.\n\n"
                "Para novo agendamento, digite *4* para FALAR COM ATENDENTE."
            )
        else:
            text += "🎉 *Consulta Concluída!*\n\nAgradecemos por escolher nossos serviços!"
        return text

    def unregistered(self) -> str:
        return (
            "🤖 *Olá!*\n\n"
            "Seu número não está em nossa lista de pacientes ativos.\n\n"
            "*Este sistema é utilizado para:*\n"
            "✅ Envio e confirmação do TCLE\n"
            "🔔 Lembretes de consultas\n"
            "📝 Coleta de feedback\n"
            "🔄 Confirmação, remarcação\n\n"
            "🏥 *Para agendar um exame, entre em contato com a UBS*"
        )

    def confirmation(self, patient: PatientRecord) -> str:
        return (
            "✅ *Consulta Confirmada!*\n\n"
            f"Olá, {patient.display_name}! Sua presença no exame de {self.exam_name} do dia "
            f"{patient.appointment_date} às {patient.appointment_time} está confirmada.\n\n"
            "Lembre-se das instruções de preparo e de comparecer com um acompanhante.\n\nNos vemos em breve! 😊"
        )

    def reschedule(self) -> str:
        return "📅 *Para remarcar a consulta entre em contato com a UBS!*"

    def action_failed(self) -> str:
        return "Houve um problema. Tente novamente ou contate a clínica."

    def attendant(self, name: str) -> str:
        return (
            "💬 *Solicitação Recebida!*\n\n"
            f"Olá, {name}. Sua solicitação para falar com um atendente foi registrada.\n\n"
            "Em breve, nossa equipe entrará em contato pelo WhatsApp ou telefone cadastrado.\n\n"
            "Aguarde nosso retorno. Obrigado! 🙏"
        )

    def preparation(self, name: str) -> str:
        return (
            f"📄 *Informações sobre o Preparo do Exame de {self.exam_name.capitalize()}*\n\n"
            f"Olá, {name}! O preparo intestinal adequado é FUNDAMENTAL para o sucesso do seu exame.\n\n"
            "*Principais Pontos:*\n"
            "1. *Dieta Especial:* Iniciar alguns dias antes, conforme orientação médica.\n"
            "2. *Líquidos Claros:* Na véspera e no dia do exame.\n"
            "3. *Laxativos:* Utilizar a medicação prescrita nos horários corretos.\n"
            "4. *Jejum:* Observar o período de jejum total antes do exame.\n"
            "5. *Acompanhante:* É OBRIGATÓRIO vir com um acompanhante maior de 18 anos.\n\n"
            "‼️ *IMPORTANTE:* Siga sempre as instruções DETALHADAS fornecidas pelo seu médico."
        )

    def generic_error(self) -> str:
        return (
            "⚠️ Ops! Ocorreu um erro inesperado.\n\n"
            "Nossa equipe foi notificada. Tente novamente em alguns instantes.\n\n"
            "Se persistir, entre em contato diretamente com a clínica. 🙏"
        )

    # ------------------------------------------------------------------
    # Operator channel
    # ------------------------------------------------------------------

    def operator_event(self, action: str, patient: PatientRecord, extra: str | None = None) -> str:
        lines = [
            f"🔔 *{action}*",
            "",
            f"👤 Nome: {patient.display_name or 'N/A'}",
            f"📱 Telefone: {patient.phone or 'N/A'}",
        ]
        if patient.email:
            lines.append(f"📧 Email: {patient.email}")
        lines.extend(
            [
                f"📅 Data: {patient.appointment_date or 'N/A'}",
                f"🕒 Horário: {patient.appointment_time or 'N/A'}",
                f"📊 Status: {patient.status or 'N/A'}",
            ]
        )
        if extra:
            lines.append(f"📝 {extra}")
        return "\n".join(lines)

    def consent_sent_operator(self, patient: PatientRecord, attempt_number: int) -> str:
        return (
            f"📋 *TCLE Enviado (Tentativa {attempt_number})*\n\n"
            f"Nome: {patient.display_name}\nTelefone: {patient.phone}\nStatus: Aguardando resposta do TCLE."
        )

    def consent_accepted_operator(self, patient: PatientRecord) -> str:
        return (
            "✅ *TCLE Aceito*\n\n"
            f"Nome: {patient.display_name}\nTelefone: {patient.phone}\nStatus: TCLE aceito. Paciente ativo no fluxo."
        )

    def consent_rejected_operator(self, patient: PatientRecord) -> str:
        return f"❌ *TCLE Rejeitado*\n\nNome: {patient.display_name}\nTelefone: {patient.phone}\nStatus: TCLE rejeitado."

    def consent_expired_operator(self, count: int) -> str:
        return f"🧹 *Limpeza TCLE Expirados*\n\nRemovidos {count} usuário(s) que não responderam ao TCLE."

    def state_sync_operator(self, removed: int, active: int) -> str:
        return f"🧹 *Sincronização de Estado*\n\n{removed} registros antigos removidos do sistema.\nAtivos na planilha: {active}"

    def severe_error(self, description: str, uptime_minutes: int, status: str, recent_logs: list[str]) -> str:
        logs = "\n".join(recent_logs) or "Nenhum log disponível."
        return (
            f"🚨 *ERRO GRAVE NO SISTEMA {self.clinic_name}*\n\n"
            f"📝 *Descrição:* {description}\n"
            f"⏰ *Uptime:* {uptime_minutes} minutos\n"
            f"📊 *Status:* {status}\n\n"
            f"*Últimos logs:*\n{logs}"
        )

    def online_digest(
        self, registry_ok: bool, production: bool, uptime_human: str, memory_mb: float
    ) -> str:
        return (
            f"🚀 *Sistema {self.clinic_name} Online!*\n\n"
            "✅ WhatsApp Conectado\n"
            f"✅ Google Sheets: {'OK' if registry_ok else 'FALHA'}\n"
            "✅ Sistema TCLE Ativo\n"
            "✅ Recuperação Automática Ativa\n\n"
            f"Modo: {'PRODUÇÃO' if production else 'DESENVOLVIMENTO'}\n"
            f"Uptime: {uptime_human}\n"
            f"Memória: {memory_mb:.2f} MB"
        )

    def shutdown_digest(self, reason: str, uptime_human: str) -> str:
        return f"🔄 *Sistema {self.clinic_name} Desligando...*\n\nSinal: {reason}\nUptime: {uptime_human}"
