"""Mock legal AI assistant.

Every answer here is canned or rule-based; no model is called. The shapes match
what a real LLM-backed implementation would return so clients can be built
against them.
"""
import json
import random
import re
import time
from datetime import datetime

from flask import current_app

DOCUMENT_SUMMARY = 'AI-generated summary of the document content.'
REPROCESSED_SUMMARY = 'AI-generated summary after processing.'
CALL_SUMMARY = ('AI-generated summary: This call discussed case details, client concerns, '
                'and next steps for legal proceedings.')
PROCESSED_TAGS = ['auto-generated', 'processed']

AVAILABLE_MODELS = [
    {
        'id': 'gpt-4',
        'name': 'GPT-4',
        'provider': 'OpenAI',
        'capabilities': ['text-generation', 'analysis', 'summarization'],
        'max_tokens': 8192,
        'cost_per_1k_tokens': 0.03,
        'recommended_for': ['complex legal analysis', 'document drafting'],
    },
    {
        'id': 'gpt-3.5-turbo',
        'name': 'GPT-3.5 Turbo',
        'provider': 'OpenAI',
        'capabilities': ['text-generation', 'analysis', 'summarization'],
        'max_tokens': 4096,
        'cost_per_1k_tokens': 0.002,
        'recommended_for': ['general queries', 'quick summaries'],
    },
    {
        'id': 'claude-3',
        'name': 'Claude 3',
        'provider': 'Anthropic',
        'capabilities': ['text-generation', 'analysis', 'research'],
        'max_tokens': 100000,
        'cost_per_1k_tokens': 0.025,
        'recommended_for': ['long document analysis', 'legal research'],
    },
]

_KEYWORD_RESPONSES = [
    ('contract', 'Based on the contract analysis, this appears to be a standard service agreement with '
                 'typical terms and conditions. Key provisions include payment terms, service scope, '
                 'and termination clauses.'),
    ('legal', 'From a legal perspective, this matter involves several important considerations including '
              'statutory requirements, case law precedents, and potential liability issues that should '
              'be carefully evaluated.'),
    ('case', 'This case presents interesting legal questions that may require further research into '
             'relevant statutes and precedential decisions. Consider the jurisdiction-specific '
             'requirements and procedural rules.'),
]
_DEFAULT_RESPONSE = ('Based on the provided information, here is my analysis and recommendations for your '
                     'consideration. Please review the details and let me know if you need any clarification.')

_DOCUMENT_ANALYSES = {
    'summary': {
        'analysis': 'This document appears to be a standard legal agreement with typical provisions for this '
                    'type of contract. The language is clear and the terms are generally favorable.',
        'keyPoints': [
            'Standard contract structure and language',
            'Clear terms and conditions',
            'Appropriate legal protections included',
        ],
        'risks': [
            'Low: Minor ambiguities in some clauses',
            'Low: Standard commercial risks',
        ],
        'recommendations': [
            'Consider clarifying ambiguous language',
            'Review payment terms for completeness',
            'Ensure all parties have signed and dated',
        ],
        'confidence': 0.85,
    },
    'risk_analysis': {
        'analysis': 'Risk analysis reveals several potential areas of concern including liability exposure, '
                    'compliance requirements, and contractual obligations that may pose legal risks.',
        'keyPoints': [
            'Liability clauses may be insufficient',
            'Compliance with state regulations required',
            'Indemnification terms need review',
        ],
        'risks': [
            'High: Unlimited liability exposure',
            'Medium: Regulatory compliance gaps',
            'Low: Minor procedural issues',
        ],
        'recommendations': [
            'Add liability caps and limitations',
            'Include compliance certification requirements',
            'Review and update procedural language',
        ],
        'confidence': 0.88,
    },
    'compliance_check': {
        'analysis': 'Compliance analysis indicates general adherence to standard legal requirements with some '
                    'areas requiring attention for full regulatory compliance.',
        'keyPoints': [
            'Most standard clauses are present',
            'Some regulatory requirements may be missing',
            'Documentation standards are adequate',
        ],
        'risks': [
            'Medium: Missing regulatory disclosures',
            'Low: Minor formatting issues',
        ],
        'recommendations': [
            'Add required regulatory disclosures',
            'Update formatting to meet court standards',
            'Include compliance certification',
        ],
        'confidence': 0.91,
    },
}
ANALYSIS_TYPES = tuple(_DOCUMENT_ANALYSES)

_PRECEDENTS = [
    {
        'title': 'Smith v. Johnson Contract Interpretation',
        'citation': '123 Cal.App.4th 456 (2020)',
        'court': 'California Court of Appeal',
        'year': 2020,
        'relevance': 0.95,
        'summary': 'Court held that ambiguous contract terms must be interpreted in favor of the non-drafting '
                   'party, establishing precedent for contract dispute resolution.',
        'key_holdings': [
            'Ambiguous terms favor non-drafting party',
            'Parol evidence admissible for interpretation',
            'Good faith performance required',
        ],
    },
    {
        'title': 'Williams v. Tech Corp Software Licensing',
        'citation': '456 F.3d 789 (9th Cir. 2019)',
        'court': 'Ninth Circuit Court of Appeals',
        'year': 2019,
        'relevance': 0.87,
        'summary': 'Federal court decision regarding software licensing agreements and breach of contract '
                   'remedies in technology disputes.',
        'key_holdings': [
            'Software licensing constitutes goods under UCC',
            'Consequential damages available for breach',
            'Notice requirements strictly enforced',
        ],
    },
    {
        'title': 'Davis v. Construction Co. Performance Standards',
        'citation': '789 Cal.2d 123 (2021)',
        'court': 'California Supreme Court',
        'year': 2021,
        'relevance': 0.82,
        'summary': 'Supreme Court ruling on performance standards in construction contracts and material '
                   'breach determination.',
        'key_holdings': [
            'Material breach requires substantial performance failure',
            'Time is of the essence clauses strictly construed',
            'Cure periods must be reasonable',
        ],
    },
]

# Keyword weights used to pick call topics, in the style of the intake classifier
_TOPIC_KEYWORDS = {
    'contract dispute': {'contract': 2, 'agreement': 1, 'breach': 2},
    'witness testimony': {'witness': 2, 'testimony': 2, 'statement': 1},
    'evidence': {'evidence': 2, 'documentation': 1, 'records': 1},
    'settlement': {'settle': 2, 'settlement': 2, 'offer': 1},
    'court hearing': {'hearing': 2, 'court': 1, 'judge': 1},
    'DUI': {'dui': 2, 'breathalyzer': 2, 'dmv': 1},
    'damages': {'damages': 2, 'compensation': 1, 'injury': 1},
}
_POSITIVE_WORDS = ('thank', 'great', 'good', 'glad', 'appreciate', 'strong')
_NEGATIVE_WORDS = ('angry', 'upset', 'worried', 'concern', 'failed', 'problem', 'frustrated')
_URGENT_WORDS = ('urgent', 'immediately', 'asap', 'deadline', 'tomorrow', 'emergency', 'arrest')


def simulate_latency():
    delay = float(current_app.config.get('AI_MOCK_DELAY_SECONDS') or 0)
    if delay > 0:
        time.sleep(delay)


def invoke(prompt, model='gpt-3.5-turbo'):
    prompt_lower = prompt.lower()
    response = _DEFAULT_RESPONSE
    for keyword, text in _KEYWORD_RESPONSES:
        if keyword in prompt_lower:
            response = text
            break
    return {
        'response': response,
        'confidence': 0.85,
        'tokens_used': random.randint(100, 599),
        'model': model,
    }


def generate_document(template_type, parameters=None):
    parameters = parameters or {}
    stamp = int(time.time() * 1000)
    today = datetime.utcnow().strftime('%m/%d/%Y')
    if template_type == 'contract':
        content = (
            'SERVICE AGREEMENT\n\n'
            f'This Service Agreement ("Agreement") is entered into on {today} between '
            f'{parameters.get("client_name") or "[CLIENT NAME]"} ("Client") and '
            f'{parameters.get("provider_name") or "[PROVIDER NAME]"} ("Provider").\n\n'
            '1. SERVICES\n'
            f'Provider agrees to provide the following services: {parameters.get("services") or "[SERVICES DESCRIPTION]"}\n\n'
            '2. COMPENSATION\n'
            f'Client agrees to pay Provider the sum of {parameters.get("amount") or "[AMOUNT]"} for the services described herein.\n\n'
            '3. TERM\n'
            f'This Agreement shall commence on {parameters.get("start_date") or "[START DATE]"} and shall continue '
            f'until {parameters.get("end_date") or "[END DATE]"}.\n\n'
            '[Additional terms and conditions would continue here...]'
        )
        filename = f'service_agreement_{stamp}.docx'
    elif template_type == 'motion':
        content = (
            'MOTION FOR [RELIEF REQUESTED]\n\n'
            'TO THE HONORABLE COURT:\n\n'
            f'Plaintiff/Defendant {parameters.get("party_name") or "[PARTY NAME]"} hereby respectfully moves this '
            'Court for an order [RELIEF REQUESTED] and in support thereof states:\n\n'
            '1. [FACTUAL BACKGROUND]\n2. [LEGAL ARGUMENT]\n3. [CONCLUSION]\n\n'
            'WHEREFORE, [PARTY NAME] respectfully requests that this Court grant this motion and provide such '
            'other relief as the Court deems just and proper.\n\n'
            'Respectfully submitted,\n[ATTORNEY NAME]\n[BAR NUMBER]'
        )
        filename = f'motion_{stamp}.docx'
    else:
        content = (
            'LEGAL DOCUMENT\n\n'
            f'This document was generated using AI assistance based on the template type: {template_type}\n\n'
            f'Parameters provided:\n{json.dumps(parameters, indent=2)}\n\n'
            '[Document content would be generated here based on the specific template and parameters]'
        )
        filename = f'document_{stamp}.docx'
    return {'content': content, 'filename': filename, 'format': 'docx'}


def analyze_document(document, analysis_type='summary'):
    analysis = dict(_DOCUMENT_ANALYSES.get(analysis_type, _DOCUMENT_ANALYSES['summary']))
    analysis['document_id'] = document.id
    analysis['analysis_type'] = analysis_type if analysis_type in _DOCUMENT_ANALYSES else 'summary'
    return analysis


def legal_research(query, jurisdiction=None, max_results=10):
    return {
        'query': query,
        'jurisdiction': jurisdiction or 'All jurisdictions',
        'results': _PRECEDENTS[:max(0, int(max_results))],
        'total_found': len(_PRECEDENTS),
        'search_time': '2.3 seconds',
    }


def summarize_case(case, documents=None, call_logs=None):
    """Mock case summary, personalised with the case record."""
    parties = ' and '.join(p for p in (case.plaintiff, case.defendant) if p) or 'the parties'
    hearing = case.next_hearing.strftime('%B %d, %Y') if case.next_hearing else None
    summary = {
        'case_overview': f'{case.title} ({case.case_number}) is a {case.case_type} matter involving {parties}. '
                         + (case.summary or 'The primary issues are still being developed.'),
        'key_facts': [
            f'Case filed as {case.case_number}',
            f'Jurisdiction: {case.jurisdiction or "not specified"}',
            f'Current priority: {case.priority}',
        ],
        'legal_issues': [
            'Liability and applicable standard of care',
            'Sufficiency of the available evidence',
            'Damages calculation and mitigation',
        ],
        'current_status': f'Case is {case.status}.'
                          + (f' Next hearing scheduled for {hearing}.' if hearing else ''),
        'next_steps': [
            'Complete document discovery',
            'Depose key witnesses',
            'Prepare for the next hearing',
            'Consider settlement negotiations',
        ],
        'risk_assessment': 'High risk matter requiring close attention.' if case.priority in ('high', 'urgent')
                           else 'Medium risk case; continue building documentation.',
        'estimated_value': '$50,000 - $75,000 in potential damages',
        'confidence': 0.89,
    }
    if documents is not None:
        summary['documents_reviewed'] = len(documents)
        summary['key_facts'].append(f'{len(documents)} document(s) on file')
    if call_logs is not None:
        summary['calls_reviewed'] = len(call_logs)
        summary['key_facts'].append(f'{len(call_logs)} call(s) logged')
    return summary


def call_insights(text):
    """Rule-based sentiment, topic and urgency extraction for call transcripts and notes."""
    if not text or not text.strip():
        return {
            'sentiment': 'neutral',
            'key_topics': [],
            'follow_up_required': False,
            'urgency_level': 'low',
        }
    lower = text.lower()
    words = re.findall(r"[a-z']+", lower)

    scores = {}
    for topic, keywords in _TOPIC_KEYWORDS.items():
        score = sum(weight for keyword, weight in keywords.items() if keyword in lower)
        if score:
            scores[topic] = score
    key_topics = [t for t, _ in sorted(scores.items(), key=lambda item: item[1], reverse=True)][:5]

    positive = sum(1 for w in words if w.startswith(_POSITIVE_WORDS))
    negative = sum(1 for w in words if w.startswith(_NEGATIVE_WORDS))
    if positive > negative:
        sentiment = 'positive'
    elif negative > positive:
        sentiment = 'negative'
    else:
        sentiment = 'neutral'

    urgent_hits = sum(1 for w in _URGENT_WORDS if w in lower)
    if urgent_hits >= 2:
        urgency = 'high'
    elif urgent_hits == 1 or negative > positive:
        urgency = 'medium'
    else:
        urgency = 'low'

    follow_up = bool(key_topics) or urgency != 'low' or 'follow up' in lower or 'follow-up' in lower
    return {
        'sentiment': sentiment,
        'key_topics': key_topics,
        'follow_up_required': follow_up,
        'urgency_level': urgency,
    }
